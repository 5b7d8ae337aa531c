"""
Tests for the command line runner.
"""

from unittest.mock import AsyncMock, patch

import pytest

from prnudge import cli
from prnudge.features.tokens.schemas import TokenRefreshSummary


class TestCli:
    """Test cases for prnudge.cli.main."""

    @pytest.mark.asyncio
    async def test_missing_command(self, capsys):
        assert await cli.main([]) == 1
        assert "Usage" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_unknown_command(self, capsys):
        assert await cli.main(["deploy"]) == 1
        assert "Unknown command 'deploy'" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_exit_status_follows_summary(self):
        failing = AsyncMock(return_value=TokenRefreshSummary(success=False, error="x"))
        with (
            patch.object(cli, "refresh_expiring_tokens", failing),
            patch.object(cli.db_manager, "close", AsyncMock()) as close,
        ):
            assert await cli.main(["tokens"]) == 1

        close.assert_awaited_once()
