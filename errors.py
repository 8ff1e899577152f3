"""
Error taxonomy for the size grid service.

Every error carries the HTTP status the API answers with and a short
message that is safe to show a shopper. Extra fields (required/selected
counts, offending positions) are exposed through ``extra()`` so the
storefront can render them.
"""
from __future__ import annotations
from typing import Any, Dict, Iterable, List


class SizeGridError(Exception):
    status_code = 400
    default_message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def extra(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": type(self).__name__, "detail": self.message}
        body.update(self.extra())
        return body


class InvalidSelectionError(SizeGridError):
    """Selection references an unknown variant or a quantity out of range."""
    default_message = "Your selection is out of date. Please reload the page and try again."


class EmptySelectionError(SizeGridError):
    default_message = "No items selected."


class BundleQuantityMismatchError(SizeGridError):
    def __init__(self, required: int, selected: int):
        self.required = required
        self.selected = selected
        super().__init__(f"Bundle requires exactly {required} items. You selected {selected}.")

    def extra(self) -> Dict[str, Any]:
        return {"required": self.required, "selected": self.selected}


class LogoIncompleteError(SizeGridError):
    """Positions were chosen but no logo was uploaded and "no logo" was not ticked."""
    default_message = "Please upload your logo or tick \"I don't have a logo yet\"."

    def extra(self) -> Dict[str, Any]:
        return {"step": "upload"}


class InvalidLogoPositionError(SizeGridError):
    def __init__(self, positions: Iterable[str]):
        self.positions: List[str] = list(positions)
        super().__init__(f"Invalid logo position: {', '.join(self.positions)}")

    def extra(self) -> Dict[str, Any]:
        return {"positions": self.positions}


class InvalidLogoMethodError(SizeGridError):
    def __init__(self, method: str):
        self.method = method
        super().__init__(f"Invalid logo method: {method}")


class OrderSubmissionError(SizeGridError):
    status_code = 409
    default_message = "Could not place your order. Please try again."
