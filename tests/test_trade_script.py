"""
Unit tests for the trading loop CLI.

Configuration, wallet and pipeline are patched; these tests pin how
--live/--dry-run and MODE decide whether swaps are executed.
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from solders.keypair import Keypair
from typer.testing import CliRunner

# Add parent and scripts to path
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent.parent / "scripts"))

import trade
from swaptx.core.config import Config
from swaptx.trading.loop import LoopStats

HAPPY_MINT = "HAPPYwgFcjEJDzRtfWE6tiHE9zGdzpNky2FvjPHsvvGZ"

runner = CliRunner()


def _config(mode):
    return Config(
        rpc_endpoint="https://primary.example.com",
        token_address=HAPPY_MINT,
        buy_below=0.00001,
        sell_above=0.00002,
        mode=mode,
    )


def _run(args, mode):
    with patch.object(trade, "load_dotenv"), \
         patch.object(trade.Config, "from_env", return_value=_config(mode)), \
         patch.object(trade, "load_keypair", return_value=Keypair()), \
         patch.object(trade.SwapOrchestrator, "from_config", return_value=MagicMock()), \
         patch.object(trade.TradingLoop, "from_config") as loop_from_config, \
         patch.object(trade.signal, "signal"):
        loop_from_config.return_value.run.return_value = LoopStats()
        result = runner.invoke(trade.app, args)
    return result, loop_from_config


class TestDryRunFlag:
    """Test which mode the loop runs in."""

    @pytest.mark.parametrize("args,mode,dry_run", [
        ([], "TEST", True),
        ([], "LIVE", False),
        (["--dry-run"], "LIVE", True),
        (["--live"], "TEST", False),
    ])
    def test_mode_selection(self, args, mode, dry_run):
        result, loop_from_config = _run(args + ["--iterations", "1"], mode)

        assert result.exit_code == 0, result.output
        assert loop_from_config.call_args[1]["dry_run"] is dry_run

    def test_help_lists_both_flags(self):
        result = runner.invoke(trade.app, ["--help"])

        assert "--dry-run" in result.output
        assert "--live" in result.output
