from __future__ import annotations

from scripts.validate_environment import main
from roundbook.utils.config import get_settings


def test_environment_validation_passes(capsys):
    get_settings.cache_clear()
    assert main() == 0
    output = capsys.readouterr().out
    assert "[FAIL]" not in output
    assert "on deck=b2" in output
