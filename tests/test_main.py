"""
Tests for CLI entry point (mstodo_sync/main.py).

Validates argument parsing, command dispatch, and error handling.
"""

import json
from unittest.mock import Mock, patch

import pytest

from mstodo_sync.main import main
from mstodo_sync.commands.push import parse_line_spec
from mstodo_sync.core.exceptions import AuthenticationError, ConfigurationError
from mstodo_sync.core.models import SyncConfig


def _mock_command(target, return_value=True, side_effect=None):
    instance = Mock()
    instance.run.return_value = return_value
    if side_effect is not None:
        instance.run.side_effect = side_effect
    return patch(f'mstodo_sync.main.{target}', return_value=instance), instance


class TestMainCLI:
    """Test suite for main CLI entry point."""

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_sync_command_dispatch(self):
        patcher, instance = _mock_command('SyncCommand')
        with patcher, patch('mstodo_sync.main.load_config', return_value=SyncConfig()):
            assert main(['sync']) == 0
        instance.run.assert_called_once_with(reset=False)

    def test_sync_reset_flag(self):
        patcher, instance = _mock_command('SyncCommand')
        with patcher, patch('mstodo_sync.main.load_config', return_value=SyncConfig()):
            main(['sync', '--reset'])
        instance.run.assert_called_once_with(reset=True)

    def test_push_passes_file_and_lines(self):
        patcher, instance = _mock_command('PushCommand')
        with patcher, patch('mstodo_sync.main.load_config', return_value=SyncConfig()):
            assert main(['push', 'Notes/Plan.md', '--lines', '3,5-7']) == 0
        instance.run.assert_called_once_with('Notes/Plan.md', '3,5-7')

    def test_today_passes_output_path(self):
        patcher, instance = _mock_command('TodayCommand')
        with patcher, patch('mstodo_sync.main.load_config', return_value=SyncConfig()):
            assert main(['today', '--output', 'Daily/Today.md']) == 0
        instance.run.assert_called_once_with('Daily/Today.md')

    def test_failed_command_exits_one(self):
        patcher, _ = _mock_command('CleanupCommand', return_value=False)
        with patcher, patch('mstodo_sync.main.load_config', return_value=SyncConfig()):
            assert main(['cleanup']) == 1

    def test_authentication_error_exits_one_with_hint(self, capsys):
        patcher, _ = _mock_command('SyncCommand', side_effect=AuthenticationError("expired"))
        with patcher, patch('mstodo_sync.main.load_config', return_value=SyncConfig()):
            assert main(['sync']) == 1
        assert "MSTODO_ACCESS_TOKEN" in capsys.readouterr().out

    def test_configuration_error_exits_one(self, capsys):
        patcher, _ = _mock_command('SummaryCommand', side_effect=ConfigurationError("No vault configured"))
        with patcher, patch('mstodo_sync.main.load_config', return_value=SyncConfig()):
            assert main(['summary']) == 1
        assert "No vault configured" in capsys.readouterr().out

    def test_keyboard_interrupt_exits_130(self):
        patcher, _ = _mock_command('ListsCommand', side_effect=KeyboardInterrupt())
        with patcher, patch('mstodo_sync.main.load_config', return_value=SyncConfig()):
            assert main(['lists']) == 130


class TestCommandsAgainstFiles:
    def test_lists_reads_cache_from_config(self, tmp_path, capsys):
        cache_path = tmp_path / "tasks_delta.json"
        cache_path.write_text(json.dumps({"lists": [{
            "listId": "L1",
            "name": "Groceries",
            "deltaToken": "",
            "tasks": [
                {"id": "a", "title": "milk", "status": "notStarted"},
                {"id": "b", "title": "eggs", "status": "completed"},
            ],
        }]}), encoding="utf-8")
        config_path = tmp_path / "config.json"
        SyncConfig(cache_path=str(cache_path)).save_to_file(str(config_path))

        assert main(['--config', str(config_path), 'lists']) == 0
        out = capsys.readouterr().out
        assert "Groceries: 1 open / 2 total" in out

    def test_reset_cache_removes_file(self, tmp_path):
        cache_path = tmp_path / "tasks_delta.json"
        cache_path.write_text('{"lists": []}', encoding="utf-8")
        config_path = tmp_path / "config.json"
        SyncConfig(cache_path=str(cache_path)).save_to_file(str(config_path))

        assert main(['--config', str(config_path), 'reset-cache']) == 0
        assert not cache_path.exists()

    def test_sync_without_vault_fails(self, tmp_path, capsys):
        config_path = tmp_path / "config.json"
        SyncConfig(cache_path=str(tmp_path / "c.json")).save_to_file(str(config_path))

        assert main(['--config', str(config_path), 'sync']) == 1
        assert "No Obsidian vault configured" in capsys.readouterr().out


@pytest.mark.parametrize("spec,expected", [
    (None, None),
    ("", None),
    ("3", {3}),
    ("3,5-7", {3, 5, 6, 7}),
    ("9-8, 1", {1, 8, 9}),
])
def test_parse_line_spec(spec, expected):
    assert parse_line_spec(spec) == expected
