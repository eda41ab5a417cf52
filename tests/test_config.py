import pytest

from queuepeek.config import FileConfig, load_config, resolve
from queuepeek.errors import ConfigError


def write(tmp_path, text):
    p = tmp_path / "queuepeek.yml"
    p.write_text(text, encoding="utf-8")
    return p


def test_missing_file_is_empty_config(tmp_path):
    cfg = load_config(tmp_path / "nope.yml")
    assert cfg.environments == {}
    assert cfg.flavor == "resque"


def test_load_config(tmp_path):
    cfg = load_config(write(tmp_path, """
default: production
prefix: "app:resque:"
environments:
  production: redis1.internal:6380
  staging: localhost
"""))
    assert cfg.default == "production"
    assert cfg.prefix == "app:resque:"
    assert cfg.environments["staging"] == "localhost"


@pytest.mark.parametrize("text", [
    "environments: [a, b\n",
    "- just\n- a list\n",
    "flavor: celery\n",
    "environments: [a, b]\n",
])
def test_bad_config_is_config_error(tmp_path, text):
    with pytest.raises(ConfigError):
        load_config(write(tmp_path, text))


def test_defaults_without_config():
    s = resolve(FileConfig())
    assert s.endpoint == "localhost:6379"
    assert s.prefix == "resque:"
    assert s.environment is None


def test_sidekiq_flavor_changes_default_prefix():
    assert resolve(FileConfig(), flavor="side").prefix == "sidekiq:"
    assert resolve(FileConfig(flavor="sidekiq")).prefix == "sidekiq:"


def test_environment_prefix_match():
    cfg = FileConfig(default="staging", environments={"production": "p:1", "staging": "s:2"})
    assert resolve(cfg).endpoint == "s:2"
    s = resolve(cfg, env="prod")
    assert (s.endpoint, s.environment) == ("p:1", "production")


def test_ambiguous_or_unknown_environment():
    cfg = FileConfig(environments={"prod-eu": "a", "prod-us": "b"})
    with pytest.raises(ConfigError, match="Ambiguous"):
        resolve(cfg, env="prod")
    with pytest.raises(ConfigError, match="Unknown"):
        resolve(cfg, env="dev")


def test_env_without_environments():
    with pytest.raises(ConfigError):
        resolve(FileConfig(), env="prod")


def test_command_line_wins():
    cfg = FileConfig(default="production", prefix="cfg:", environments={"production": "p:1"})
    s = resolve(cfg, redis="other:7000", prefix="cli:")
    assert (s.endpoint, s.prefix) == ("other:7000", "cli:")
    assert resolve(cfg).prefix == "cfg:"


def test_empty_prefix_is_respected():
    assert resolve(FileConfig(prefix=""), flavor="sidekiq").prefix == ""
    assert resolve(FileConfig(), prefix="").prefix == ""
