import importlib


def test_defaults(monkeypatch):
    for name in ("MAX_REDIRECTS", "PROXY_TIMEOUT", "PORT", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    import ghproxy.vars as vars_module

    importlib.reload(vars_module)

    assert vars_module.MAX_REDIRECTS == 20
    assert vars_module.PROXY_TIMEOUT == 300
    assert vars_module.PORT == 8000
    assert vars_module.LOG_LEVEL == "info"
    assert vars_module.PROXY_PREFIX == "/"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("MAX_REDIRECTS", "5")
    monkeypatch.setenv("PROXY_TIMEOUT", "0")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    import ghproxy.vars as vars_module

    importlib.reload(vars_module)
    try:
        assert vars_module.MAX_REDIRECTS == 5
        assert vars_module.PROXY_TIMEOUT == 0
        assert vars_module.LOG_LEVEL == "debug"
    finally:
        monkeypatch.undo()
        importlib.reload(vars_module)
