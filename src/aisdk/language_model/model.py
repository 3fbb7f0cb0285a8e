"""Language model interface - The contract every provider adapter fulfils.

The generation loops never talk HTTP. They call an adapter through two
methods and receive provider-neutral types back; transport, auth and
wire-format translation belong to the adapter.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, AsyncIterator

if TYPE_CHECKING:
    from ..types import LanguageModelResponse
    from .options import LanguageModelOptions
    from .stream import LanguageModelStreamChunk


class LanguageModel(ABC):
    """A language model backend.

    Implementations raise ProviderError for network, HTTP or
    deserialization failures.
    """

    #: Model identifier used for tracing and logs
    name: str = "unknown"

    @abstractmethod
    async def generate(self, options: LanguageModelOptions) -> LanguageModelResponse:
        """Run one non-streaming round.

        Args:
            options: Read-only snapshot of the run (system prompt, log,
                tools, schema, sampling knobs)

        Returns:
            Content items in model order plus usage
        """

    @abstractmethod
    async def stream(self, options: LanguageModelOptions) -> AsyncIterator[LanguageModelStreamChunk]:
        """Run one streaming round.

        Returns an async iterator of Delta / Done chunks. Failures may be
        raised either here or while iterating.
        """


__all__ = ["LanguageModel"]
