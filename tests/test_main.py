import pytest

from school_ledger import main
from school_ledger.core.config import settings


def test_run_serves_the_app_with_uvicorn(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []
    monkeypatch.setattr(main.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    monkeypatch.setattr(settings, "port", 8123)

    main.run()

    assert calls == [
        ("school_ledger.main:app", {"host": settings.host, "port": 8123, "log_level": settings.log_level.lower()})
    ]
