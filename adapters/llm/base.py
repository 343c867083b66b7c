from __future__ import annotations

from typing import Protocol


class CompletionService(Protocol):
    PROVIDER_ID: str

    def complete(
        self,
        *,
        system: str,
        user: str,
        temperature: float = 0.2,
        json_mode: bool = True,
    ) -> str:
        """Return the text of a single chat completion.

        Raise UpstreamTransportError on non-success status or timeout and
        ConfigurationError when credentials are missing.
        """
