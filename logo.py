"""
Logo customization: surcharge, completeness and the three-step wizard.

The wizard never decides whether a logo is complete. A shopper may finish
it without uploading anything; commit is then blocked by ``is_incomplete``.
"""
from __future__ import annotations
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from errors import InvalidLogoMethodError, InvalidLogoPositionError
from schemas import LogoConfig, LogoSelection

METHODS = ("print", "embroidery")
STEPS = ("position", "method", "upload")

POSITION_LABELS: Dict[str, str] = {
    "left-chest": "Left Chest",
    "right-chest": "Right Chest",
    "front-center": "Front Center",
    "back": "Back",
    "left-sleeve": "Left Sleeve",
    "right-sleeve": "Right Sleeve",
    "nape": "Nape",
}

METHOD_LABELS = {"print": "Print", "embroidery": "Embroidery"}


def known_positions(positions: Iterable[str]) -> List[str]:
    """Keep only positions the shop knows how to label, in the given order."""
    out: List[str] = []
    for p in positions:
        if p in POSITION_LABELS and p not in out:
            out.append(p)
    return out


def has_positions(logo: Optional[LogoSelection]) -> bool:
    return bool(logo and logo.positions)


def logo_surcharge(config: Optional[LogoConfig], logo: Optional[LogoSelection]) -> Decimal:
    """Per-unit surcharge for the chosen method; zero until a position is picked."""
    if config is None or not has_positions(logo):
        return Decimal("0")
    if logo.method == "embroidery":
        return config.embroidery_surcharge
    return config.print_surcharge


def is_incomplete(config: Optional[LogoConfig], logo: Optional[LogoSelection]) -> bool:
    return (
        config is not None
        and has_positions(logo)
        and not logo.attachment_ref
        and not logo.no_logo
    )


def is_acceptable(config: Optional[LogoConfig], logo: Optional[LogoSelection]) -> bool:
    """False when ``validate_logo`` would reject the selection at commit."""
    if not has_positions(logo):
        return True
    allowed = set(config.allowed_positions) if config else set()
    return all(p in allowed for p in logo.positions) and logo.method in METHODS


def validate_logo(config: Optional[LogoConfig], logo: LogoSelection) -> None:
    allowed = set(config.allowed_positions) if config else set()
    invalid = [p for p in logo.positions if p not in allowed]
    if invalid:
        raise InvalidLogoPositionError(invalid)
    if logo.method not in METHODS:
        raise InvalidLogoMethodError(logo.method)


def describe(positions: Iterable[str], method: str) -> str:
    """Human-readable summary, e.g. 'Left Chest, Back - Embroidery'."""
    labels = [POSITION_LABELS.get(p, p) for p in positions]
    return f"{', '.join(labels)} - {METHOD_LABELS.get(method, 'Print')}"


class LogoWizard:
    """Position -> Method -> Upload. Forward needs the step's minimum; back is free."""

    def __init__(self, config: LogoConfig) -> None:
        self.config = config
        self.step = 0
        self.finished = False
        self.selection = LogoSelection()

    @property
    def current_step(self) -> str:
        return STEPS[self.step]

    def toggle_position(self, position: str) -> None:
        if position not in self.config.allowed_positions:
            raise InvalidLogoPositionError([position])
        positions = list(self.selection.positions)
        if position in positions:
            positions.remove(position)
        else:
            positions.append(position)
        self.selection = self.selection.model_copy(update={"positions": positions})

    def set_method(self, method: str) -> None:
        if method not in METHODS:
            raise InvalidLogoMethodError(method)
        self.selection = self.selection.model_copy(update={"method": method})

    def attach(self, attachment_ref: str, url: Optional[str] = None) -> None:
        self.selection = self.selection.model_copy(
            update={"attachment_ref": attachment_ref, "attachment_url": url, "no_logo": False}
        )

    def detach(self) -> None:
        self.selection = self.selection.model_copy(update={"attachment_ref": None, "attachment_url": None})

    def set_no_logo(self, flag: bool) -> None:
        self.selection = self.selection.model_copy(update={"no_logo": flag})

    def set_notes(self, notes: Optional[str]) -> None:
        self.selection = self.selection.model_copy(update={"notes": (notes or "").strip() or None})

    def can_continue(self) -> bool:
        if self.current_step == "position":
            return bool(self.selection.positions)
        return self.step < len(STEPS) - 1

    def advance(self) -> bool:
        if not self.can_continue():
            return False
        self.step += 1
        return True

    def back(self) -> None:
        if self.step > 0:
            self.step -= 1

    def finish(self) -> LogoSelection:
        self.finished = True
        return self.selection

    def reset(self) -> None:
        self.step = 0
        self.finished = False
        self.selection = LogoSelection()

    def is_incomplete(self) -> bool:
        return is_incomplete(self.config, self.selection)
