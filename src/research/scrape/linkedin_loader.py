"""LinkedIn profile loader: profile snapshot plus the profile's posts."""

from __future__ import annotations

import logging

from .dataset_client import PostsDatasetClient, ProfileDatasetClient
from .models import ScrapedPage

logger = logging.getLogger(__name__)


class LinkedInLoader:
    """Loads a LinkedIn profile URL via the profile and posts datasets."""

    def __init__(
        self,
        profile_client: ProfileDatasetClient,
        posts_client: PostsDatasetClient,
    ) -> None:
        self._profile_client = profile_client
        self._posts_client = posts_client

    async def load(self, url: str) -> ScrapedPage:
        profile = await self._profile_client.fetch_profile(url)
        posts = await self._posts_client.fetch_posts(url)

        content = profile.content
        if posts:
            content = f"{content}\n\nPosts:\n{posts}"

        logger.debug(
            "linkedin profile loaded",
            extra={"url": url, "profile_length": len(profile.content), "posts_length": len(posts)},
        )
        return ScrapedPage(
            url=url,
            title=profile.title,
            content=content,
            description=profile.description,
        )
