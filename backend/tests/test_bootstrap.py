import pytest

from labslot.db import bootstrap


def _raise_error(message: str):
    raise RuntimeError(message)


def test_schema_bootstrap_raises_on_validation_failure(monkeypatch):
    monkeypatch.setattr(bootstrap.Base.metadata, "create_all", lambda bind: None)
    monkeypatch.setattr(
        bootstrap,
        "_assert_required_columns",
        lambda: _raise_error("missing required schema"),
    )

    with pytest.raises(RuntimeError, match="Schema bootstrap failed"):
        bootstrap.ensure_schema()


def test_schema_bootstrap_creates_tables():
    bootstrap.ensure_schema()
    bootstrap._assert_required_columns()
