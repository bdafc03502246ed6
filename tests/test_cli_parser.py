"""Tests for CLI command parser."""

import pytest

from cli.models import LogoutCommand, SetTokenCommand, StatusCommand, SyncCommand, UploadCommand
from cli.parser import ParseError, parse_command


def test_parse_sync_without_files():
    """Test plain sync uses the configured sources."""
    assert parse_command('sync') == SyncCommand(files=())


def test_parse_sync_with_files():
    """Test sync with recipe files, including quoted paths."""
    cmd = parse_command('sync recipes.json "exports/more recipes.json"')

    assert cmd == SyncCommand(files=('recipes.json', 'exports/more recipes.json'))


def test_parse_sync_rejects_options():
    """Test sync has no options."""
    with pytest.raises(ParseError, match='sync does not accept option --force'):
        parse_command('sync --force')


def test_parse_upload():
    """Test upload with file and type."""
    cmd = parse_command('upload icons.zip icons')

    assert cmd == UploadCommand(file='icons.zip', upload_type='icons', resume=False)


def test_parse_upload_resume_anywhere():
    """Test --resume is accepted in any position."""
    assert parse_command('upload --resume items.json items').resume
    assert parse_command('upload items.json items --resume').resume


def test_parse_upload_unknown_type():
    """Test upload rejects unknown payload types."""
    with pytest.raises(ParseError, match='Unknown upload type: textures'):
        parse_command('upload pack.zip textures')


@pytest.mark.parametrize('line', ['upload', 'upload a.json', 'upload a.json items extra'])
def test_parse_upload_argument_count(line):
    """Test upload requires exactly file and type."""
    with pytest.raises(ParseError, match='upload requires exactly 2 arguments'):
        parse_command(line)


def test_parse_status_and_logout():
    """Test argument-less commands."""
    assert parse_command('status') == StatusCommand()
    assert parse_command('logout') == LogoutCommand()


def test_parse_status_with_arguments():
    """Test status rejects arguments."""
    with pytest.raises(ParseError, match='status takes no arguments'):
        parse_command('status now')


def test_parse_set_token():
    """Test set-token with a single token."""
    assert parse_command('set-token rf_abc123') == SetTokenCommand(token='rf_abc123')


def test_parse_set_token_argument_count():
    """Test set-token requires exactly one token."""
    with pytest.raises(ParseError, match='set-token requires exactly 1 argument'):
        parse_command('set-token')


def test_parse_empty_command():
    """Test parsing empty or whitespace input."""
    with pytest.raises(ParseError, match='Empty command'):
        parse_command('   ')


def test_parse_unknown_command():
    """Test parsing unknown command."""
    with pytest.raises(ParseError, match='Unknown command: deploy'):
        parse_command('deploy')


def test_parse_unbalanced_quotes():
    """Test shell syntax errors are reported."""
    with pytest.raises(ParseError, match='Invalid syntax'):
        parse_command('sync "unterminated')


def test_commands_are_immutable():
    """Test command objects are frozen."""
    cmd = parse_command('set-token abc')

    with pytest.raises(AttributeError):
        cmd.token = 'other'
