"""
Tests for the command-line interface and engine configuration.

Tests:
- catalog, validate and simulate commands
- Exit codes for bad input
- EngineConfig environment parsing
"""

import json

import pytest

from ..cli import main
from ..config import EngineConfig
from ..spec_schema.card_catalog import card_to_dict, define_card
from ..spec_schema.effect_dsl import draw_effect

ENV_VARS = (
    "PROTOCOL_ENGINE_SEED",
    "PROTOCOL_ENGINE_CONTROL",
    "PROTOCOL_ENGINE_STARTING_PLAYER",
    "PROTOCOL_ENGINE_AUTOMATED",
    "PROTOCOL_ENGINE_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestCatalogCommand:
    """Tests for `catalog`."""

    def test_lists_protocols(self, capsys):
        assert main(["catalog"]) == 0
        out = capsys.readouterr().out
        assert "Fire (6 cards)" in out
        assert "Speed (6 cards)" in out

    def test_verbose_shows_text(self, capsys):
        assert main(["catalog", "--verbose"]) == 0
        assert "Discard 1 card. If you do, delete 1 card." in capsys.readouterr().out

    def test_json_dump(self, capsys):
        assert main(["catalog", "--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert len(data) == 48
        assert data[0]["protocol"] == "Fire"


class TestValidateCommand:
    """Tests for `validate`."""

    def test_built_in_catalog(self, capsys):
        assert main(["validate"]) == 0
        out = capsys.readouterr().out
        assert "Cards: 48  Protocols: 8" in out
        assert "Catalog is valid" in out

    def test_missing_file(self, tmp_path, capsys):
        assert main(["validate", str(tmp_path / "nope.json")]) == 1
        assert "File not found" in capsys.readouterr().out

    def test_malformed_file(self, tmp_path, capsys):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        assert main(["validate", str(path)]) == 1
        assert "Could not load catalog" in capsys.readouterr().out

    def test_invalid_catalog(self, tmp_path, capsys):
        cards = [
            card_to_dict(define_card("Test", value, middle_effects=[draw_effect("same"), draw_effect("same")]))
            for value in range(3)
        ]
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(cards), encoding="utf-8")
        assert main(["validate", str(path)]) == 1
        assert "duplicate effect id 'same'" in capsys.readouterr().out

    def test_valid_file(self, tmp_path, capsys):
        cards = [card_to_dict(define_card("Test", value, middle_effects=[draw_effect("d")])) for value in range(3)]
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(cards), encoding="utf-8")
        assert main(["validate", str(path)]) == 0
        assert "Catalog is valid" in capsys.readouterr().out


class TestSimulateCommand:
    """Tests for `simulate`."""

    def test_runs_a_match(self, capsys):
        assert main(["simulate", "--seed", "1", "--max-steps", "300"]) == 0
        out = capsys.readouterr().out
        assert "Steps:" in out
        assert "Winner:" in out or "No winner after" in out

    def test_chosen_protocols(self, capsys):
        args = ["simulate", "--player", "Fire,Water,Death", "--opponent", "Hate,Metal,Speed",
                "--policy", "first", "--max-steps", "100"]
        assert main(args) == 0
        assert "Player:   Fire, Water, Death" in capsys.readouterr().out

    def test_bad_protocols(self, capsys):
        assert main(["simulate", "--player", "Fire,Fire,Water"]) == 1
        assert "Error:" in capsys.readouterr().out

    def test_show_log(self, capsys):
        assert main(["simulate", "--seed", "2", "--max-steps", "20", "--show-log"]) == 0
        assert "[player] Game Started." in capsys.readouterr().out


class TestMain:
    """Tests for the entry point."""

    def test_no_command(self, capsys):
        assert main([]) == 1
        assert "usage: protocol-engine" in capsys.readouterr().out


class TestEngineConfig:
    """Tests for environment configuration."""

    def test_defaults(self):
        config = EngineConfig.from_env()
        assert config == EngineConfig()
        assert config.automated == ("opponent",)

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("PROTOCOL_ENGINE_SEED", "5")
        monkeypatch.setenv("PROTOCOL_ENGINE_CONTROL", "yes")
        monkeypatch.setenv("PROTOCOL_ENGINE_AUTOMATED", "player, opponent")
        monkeypatch.setenv("PROTOCOL_ENGINE_LOG_LEVEL", "debug")
        config = EngineConfig.from_env()
        assert config.random_seed == 5
        assert config.use_control_mechanic
        assert config.automated == ("player", "opponent")
        assert config.log_level == "DEBUG"

    def test_simulate_uses_environment_seed(self, monkeypatch, capsys):
        monkeypatch.setenv("PROTOCOL_ENGINE_SEED", "3")
        assert main(["simulate", "--max-steps", "50"]) == 0
        first = capsys.readouterr().out
        assert main(["simulate", "--seed", "3", "--max-steps", "50"]) == 0
        assert capsys.readouterr().out == first
