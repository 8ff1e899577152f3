from decimal import Decimal

import pytest

from errors import InvalidLogoMethodError, InvalidLogoPositionError
from logo import LogoWizard, describe, is_incomplete, known_positions, logo_surcharge, validate_logo
from schemas import LogoSelection


def test_surcharge_by_method(logo_config):
    assert logo_surcharge(logo_config, LogoSelection(positions=["back"], method="print")) == Decimal("2.00")
    assert logo_surcharge(logo_config, LogoSelection(positions=["back"], method="embroidery")) == Decimal("4.50")
    assert logo_surcharge(None, LogoSelection(positions=["back"])) == 0
    assert logo_surcharge(logo_config, None) == 0


def test_incomplete_rules(logo_config):
    assert is_incomplete(logo_config, LogoSelection(positions=["left-chest"])) is True
    assert is_incomplete(logo_config, LogoSelection(positions=["left-chest"], attachment_ref="a1")) is False
    assert is_incomplete(logo_config, LogoSelection(positions=["left-chest"], no_logo=True)) is False
    assert is_incomplete(logo_config, LogoSelection()) is False
    assert is_incomplete(None, LogoSelection(positions=["left-chest"])) is False


def test_validation_reports_each_bad_position(logo_config):
    with pytest.raises(InvalidLogoPositionError) as exc:
        validate_logo(logo_config, LogoSelection(positions=["left-chest", "nape", "hood"]))
    assert exc.value.positions == ["nape", "hood"]


def test_validation_rejects_unknown_method(logo_config):
    with pytest.raises(InvalidLogoMethodError):
        validate_logo(logo_config, LogoSelection(positions=["back"], method="screen"))


def test_describe_and_known_positions():
    assert describe(["left-chest", "back"], "embroidery") == "Left Chest, Back - Embroidery"
    assert describe(["custom-spot"], "print") == "custom-spot - Print"
    assert known_positions(["back", "hood", "back", "nape"]) == ["back", "nape"]


class TestLogoWizard:
    def test_position_step_needs_a_position(self, logo_config):
        wizard = LogoWizard(logo_config)
        assert wizard.advance() is False
        assert wizard.current_step == "position"

        wizard.toggle_position("left-chest")
        assert wizard.advance() is True
        assert wizard.current_step == "method"
        assert wizard.advance() is True
        assert wizard.current_step == "upload"
        assert wizard.advance() is False

    def test_back_is_unrestricted(self, logo_config):
        wizard = LogoWizard(logo_config)
        wizard.toggle_position("back")
        wizard.advance()
        wizard.advance()
        wizard.back()
        wizard.back()
        wizard.back()
        assert wizard.current_step == "position"

    def test_finish_without_upload_leaves_selection_incomplete(self, logo_config):
        wizard = LogoWizard(logo_config)
        wizard.toggle_position("back")
        wizard.set_method("embroidery")
        selection = wizard.finish()
        assert wizard.finished is True
        assert selection.method == "embroidery"
        assert wizard.is_incomplete() is True

        wizard.set_no_logo(True)
        assert wizard.is_incomplete() is False

    def test_attach_clears_no_logo(self, logo_config):
        wizard = LogoWizard(logo_config)
        wizard.toggle_position("back")
        wizard.set_no_logo(True)
        wizard.attach("att-7", "https://cdn.example.com/logo.png")
        assert wizard.selection.no_logo is False
        assert wizard.selection.attachment_ref == "att-7"
        wizard.detach()
        assert wizard.is_incomplete() is True

    def test_toggle_twice_unselects(self, logo_config):
        wizard = LogoWizard(logo_config)
        wizard.toggle_position("back")
        wizard.toggle_position("back")
        assert wizard.selection.positions == []

    def test_rejects_positions_and_methods_outside_config(self, logo_config):
        wizard = LogoWizard(logo_config)
        with pytest.raises(InvalidLogoPositionError):
            wizard.toggle_position("nape")
        with pytest.raises(InvalidLogoMethodError):
            wizard.set_method("laser")

    def test_notes_are_trimmed_and_reset_clears(self, logo_config):
        wizard = LogoWizard(logo_config)
        wizard.set_notes("  navy thread please ")
        assert wizard.selection.notes == "navy thread please"
        wizard.set_notes("   ")
        assert wizard.selection.notes is None
        wizard.toggle_position("back")
        wizard.reset()
        assert wizard.selection == LogoSelection()
