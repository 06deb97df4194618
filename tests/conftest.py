import sys
from pathlib import Path

import pytest


_root = Path(__file__).resolve().parents[1]
_src = _root / "src"
for _path in (_src, _root):
    if _path.exists() and str(_path) not in sys.path:
        sys.path.insert(0, str(_path))


from acmesupport import settings as settings_module  # noqa: E402
from acmesupport.settings import Settings  # noqa: E402


@pytest.fixture(autouse=True)
def test_settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Isolated settings: no API key, instant streaming."""
    s = Settings(
        _env_file=None,
        openai_api_key=None,
        stream_interval_seconds=0.0,
    )
    monkeypatch.setattr(settings_module, "_SETTINGS", s)
    return s
