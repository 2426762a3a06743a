"""Embedding gateway: text → fixed-length vector.

Wraps an EmbedClientInterface and guarantees that every vector handed to the
rest of the system has exactly the configured dimensionality. Vectors of any
other length raise EmbeddingShapeError; they are never truncated or padded.
"""

import httpx

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import EmbeddingShapeError, ProviderUnavailableError

DEFAULT_VECTOR_SIZE = 768


class EmbeddingGateway:
    """Validating front door to the embedding provider."""

    def __init__(self, helper_config: HelperConfig, embed_client: EmbedClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._embed_client = embed_client
        self.dimension = int(helper_config.get_number_val("EMBED_VECTOR_SIZE", default=DEFAULT_VECTOR_SIZE))

    ##########################################
    ################ CORE ####################
    ##########################################

    async def embed(self, text: str) -> list[float]:
        """Embed a single text.

        Raises:
            EmbeddingShapeError: If the provider returns a vector of the wrong length.
            ProviderUnavailableError: If the provider fails.
        """
        vectors = await self.embed_many([text])
        return vectors[0]

    async def embed_many(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts in one provider call, preserving order.

        Raises:
            EmbeddingShapeError: If any returned vector has the wrong length.
            ProviderUnavailableError: If the provider fails or returns the wrong number of vectors.
        """
        if not texts:
            return []
        try:
            vectors = await self._embed_client.do_embed(texts)
        except httpx.HTTPError as exc:
            raise ProviderUnavailableError(f"Embedding backend unreachable: {exc}") from exc
        except Exception as exc:
            raise ProviderUnavailableError(f"Embedding request failed: {exc}") from exc

        if len(vectors) != len(texts):
            raise ProviderUnavailableError(
                f"Embedding backend returned {len(vectors)} vectors for {len(texts)} texts."
            )
        for vector in vectors:
            self.validate(vector)
        return [[float(v) for v in vector] for vector in vectors]

    def validate(self, vector: list[float]) -> None:
        """Raise EmbeddingShapeError unless the vector has the configured dimensionality."""
        if len(vector) != self.dimension:
            self.logging.error(
                "Embedding shape mismatch: got %d dimensions, expected %d.", len(vector), self.dimension
            )
            raise EmbeddingShapeError(expected=self.dimension, actual=len(vector))
