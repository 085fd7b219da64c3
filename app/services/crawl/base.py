from __future__ import annotations

from typing import Any


class Spider:
    """Minimal spider contract.

    Subclasses implement parse_html() to project raw markup onto a model and
    fetch() to retrieve and parse in one step.
    """

    name: str = "base"

    async def fetch(self, *args, **kwargs) -> Any:
        raise NotImplementedError

    def parse_html(self, *args, **kwargs) -> Any:
        raise NotImplementedError
