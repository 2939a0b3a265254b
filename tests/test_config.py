import inspect

import pytest

import rakestats
from rakestats.config import DEFAULT_USER_IDS, ReportConfig, load_config
from rakestats.errors import ConfigError


def test_defaults_without_file():
    config = load_config(env={})
    assert config.store.backend == "postgres"
    assert config.store.partition_prefix == "game_"
    assert config.game_type == "RING"
    assert config.default_user_ids == DEFAULT_USER_IDS
    assert config.strict_invariants is False


def test_default_roster_has_no_repeats():
    assert len(set(DEFAULT_USER_IDS)) == len(DEFAULT_USER_IDS) == 71


def test_yaml_file_and_env_overrides(tmp_path):
    path = tmp_path / "rakestats.yml"
    path.write_text(
        "store:\n"
        "  backend: jsonl\n"
        "  data_dir: /srv/hands\n"
        "game_type: RING\n"
        "max_workers: 2\n"
        "default_user_ids: [5, 6, 5]\n",
        encoding="utf-8",
    )
    config = load_config(str(path), env={"RAKESTATS_DATA_DIR": "/mnt/hands", "RAKESTATS_MAX_WORKERS": "6"})

    assert config.store.backend == "jsonl"
    assert config.store.data_dir == "/mnt/hands"
    assert config.max_workers == 6
    assert config.default_user_ids == [5, 6]


def test_database_url_sets_dsn():
    config = load_config(env={"DATABASE_URL": "postgresql://u@db/hands"})
    assert config.store.dsn == "postgresql://u@db/hands"


def test_empty_yaml_file_uses_defaults(tmp_path):
    path = tmp_path / "empty.yml"
    path.write_text("", encoding="utf-8")
    assert load_config(str(path), env={}) == ReportConfig()


@pytest.mark.parametrize(
    "content",
    [
        "store: [unclosed",
        "- just\n- a list\n",
        "max_workers: 0\n",
        "unknown_key: 1\n",
        "store:\n  backend: mongo\n",
    ],
)
def test_invalid_config_raises(tmp_path, content):
    path = tmp_path / "bad.yml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(str(path), env={})


def test_missing_config_file_raises(tmp_path):
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "nope.yml"), env={})


def test_config_is_frozen():
    config = ReportConfig()
    with pytest.raises(Exception):
        config.max_workers = 10


def test_package_level_helpers_keep_signatures():
    assert list(inspect.signature(rakestats.load_config).parameters) == ["path", "env"]
    assert list(inspect.signature(rakestats.run_user_stats).parameters) == [
        "config", "store", "start", "end", "user_ids", "title",
    ]
    assert rakestats.load_config(env={"RAKESTATS_MAX_WORKERS": "3"}).max_workers == 3
