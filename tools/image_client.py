"""Cover image generation through the OpenAI images API."""

import logging
from typing import Optional

from openai import AsyncOpenAI

from config.exceptions import ImageGenerationError
from config.settings import Settings

logger = logging.getLogger(__name__)


class ImageClient:
    """Generates one image per prompt and returns its URL."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[AsyncOpenAI] = None):
        self.settings = settings or Settings()
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.settings.openai_api_key:
                raise ImageGenerationError("OpenAI not configured for image generation")
            self._client = AsyncOpenAI(api_key=self.settings.openai_api_key)
        return self._client

    async def generate(self, prompt: str) -> str:
        """Generate an image for ``prompt``.

        Raises:
            ImageGenerationError: On provider failure or an empty response.
        """
        client = self._get_client()
        try:
            response = await client.images.generate(
                model=self.settings.image_model,
                prompt=prompt,
                size=self.settings.image_size,
                n=1,
            )
        except Exception as e:
            raise ImageGenerationError(f"Image generation failed: {e}") from e

        url = response.data[0].url if response.data else None
        if not url:
            raise ImageGenerationError("Image generation returned no URL")
        logger.debug("Cover image generated: %s", url)
        return url
