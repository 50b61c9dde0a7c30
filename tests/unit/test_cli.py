"""
CLI unit tests
Tests for hubble/cli/main.py
"""
import json

from typer.testing import CliRunner

from fixtures.common import make_state_tree
from hubble.cli.main import app

runner = CliRunner()

STATES = [
    {"pubkey_index": 0, "token_type": 1, "balance": "1000.0"},
    {"pubkey_index": 1, "token_type": 1, "balance": 0},
    {"pubkey_index": 2, "token_type": 1, "balance": 0},
    {"pubkey_index": 3, "token_type": 2, "balance": 100},
]


class TestZeros:
    def test_prints_each_level(self):
        result = runner.invoke(app, ["zeros", "2"])
        assert result.exit_code == 0
        assert "0: 0x290decd9548b62a8d60345a988386fc84ba6bc95484008f6362f93160ef3e563" in result.output
        assert "2: 0x" in result.output


class TestRoot:
    def test_root_of_state_file(self, tmp_path):
        path = tmp_path / "states.json"
        path.write_text(json.dumps({"depth": 8, "states": STATES}))
        result = runner.invoke(app, ["root", str(path)])
        assert result.exit_code == 0
        assert f"0x{make_state_tree().root.hex()}" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["root", str(tmp_path / "nope.json")])
        assert result.exit_code == 1


class TestDeposit:
    def _file(self, tmp_path, deposits, subtree_depth: int):
        path = tmp_path / "deposit.json"
        path.write_text(
            json.dumps(
                {
                    "depth": 8,
                    "states": STATES[:2],
                    "deposits": deposits,
                    "subtree_depth": subtree_depth,
                }
            )
        )
        return path

    def test_merge_into_first_empty_subtree(self, tmp_path):
        result = runner.invoke(app, ["deposit", str(self._file(tmp_path, STATES[2:], 1))])
        assert result.exit_code == 0
        assert "position: 1" in result.output
        assert f"state root: 0x{make_state_tree().root.hex()}" in result.output

    def test_subtree_deeper_than_configured(self, tmp_path):
        result = runner.invoke(app, ["deposit", str(self._file(tmp_path, STATES, 2))])
        assert result.exit_code == 1


class TestReplay:
    def _scenario(self, tmp_path, nonce: int):
        path = tmp_path / "scenario.json"
        path.write_text(
            json.dumps(
                {
                    "depth": 8,
                    "fee_receiver": 2,
                    "states": STATES,
                    "transfers": [
                        {
                            "from": 0,
                            "to": 1,
                            "token_type": 1,
                            "amount": "39.99",
                            "fee": "0.01",
                            "nonce": nonce,
                        }
                    ],
                }
            )
        )
        return path

    def test_honest_replay(self, tmp_path):
        result = runner.invoke(app, ["replay", str(self._scenario(tmp_path, 0))])
        assert result.exit_code == 0
        assert "replayed: OK fraudulent=False" in result.output

    def test_rejected_transfer(self, tmp_path):
        result = runner.invoke(app, ["replay", str(self._scenario(tmp_path, 4))])
        assert result.exit_code == 1
        assert "applied: BAD_NONCE safe=False" in result.output
