"""
Tests for the spectap CLI

Tests argument parsing and command dispatch. Server start-up is patched
out so no sockets are opened.
"""

import json
from unittest.mock import patch

import pytest

from spectap.cli import build_parser, main
from spectap.capture.proxy import RecordingProxy
from spectap.capture.recording import RecordingSession
from spectap.mock.server import MockServer
from spectap.replay.replayer import ReplayServer


class TestParser:
    """Test argument parsing."""

    def test_record_defaults(self):
        """Test record defaults."""
        args = build_parser().parse_args(['record', '--target', 'http://api.test'])

        assert args.output == 'recordings'
        assert args.port == 3002
        assert args.host == '127.0.0.1'
        assert args.include is None

    def test_replay_defaults(self):
        """Test replay defaults."""
        args = build_parser().parse_args(['replay', 'session.json'])

        assert args.port == 3003
        assert args.loop is False
        assert args.latency is False

    def test_start_flags_unset(self):
        """Test watch/stateful stay unset unless given, so config files apply."""
        args = build_parser().parse_args(['start'])

        assert args.watch is None
        assert args.stateful is None

    def test_record_requires_target(self):
        """Test record without --target is a usage error."""
        with pytest.raises(SystemExit) as exc:
            build_parser().parse_args(['record'])

        assert exc.value.code == 2


class TestCommands:
    """Test command dispatch."""

    def test_no_command(self, capsys):
        """Test no subcommand prints help and exits 1."""
        with pytest.raises(SystemExit) as exc:
            main([])

        assert exc.value.code == 1
        assert 'usage' in capsys.readouterr().out

    def test_generate_spec(self, capsys):
        """Test the unimplemented command exits non-zero."""
        with pytest.raises(SystemExit) as exc:
            main(['generate-spec'])

        assert exc.value.code == 1
        assert 'not implemented' in capsys.readouterr().err

    def test_start(self, spec_file):
        """Test start builds a server from CLI overrides."""
        with patch.object(MockServer, 'start', autospec=True) as start:
            main(['start', '--spec', str(spec_file), '--port', '4001', '--stateless', '--seed', '3'])

        server = start.call_args[0][0]
        assert server.config.port == 4001
        assert server.config.stateful is False
        assert server.generator.seed == 3
        assert len(server.routes.table) == 7

    def test_start_from_config_file(self, tmp_path, spec_file, monkeypatch):
        """Test start picks up spectap.config.yaml from the working directory."""
        (tmp_path / 'spectap.config.yaml').write_text(f'spec: {spec_file.name}\nport: 4555\n')
        monkeypatch.chdir(tmp_path)

        with patch.object(MockServer, 'start', autospec=True) as start:
            main(['start'])

        assert start.call_args[0][0].config.port == 4555

    def test_start_without_spec(self, tmp_path, monkeypatch, capsys):
        """Test start without a spec exits with a diagnostic."""
        monkeypatch.chdir(tmp_path)

        with pytest.raises(SystemExit) as exc:
            main(['start'])

        assert exc.value.code == 1
        assert 'Spec path is required' in capsys.readouterr().err

    def test_start_missing_spec_file(self, tmp_path, capsys):
        """Test a nonexistent spec file exits with a diagnostic."""
        with pytest.raises(SystemExit) as exc:
            main(['start', '--spec', str(tmp_path / 'missing.yaml')])

        assert exc.value.code == 1
        assert '❌' in capsys.readouterr().err

    def test_record(self, tmp_path):
        """Test record builds a proxy from its options."""
        output = tmp_path / 'session.json'

        with patch.object(RecordingProxy, 'start', autospec=True) as start:
            main(['record', '-t', 'http://api.test', '-o', str(output),
                  '--include', '/api/', '--status-filter', '200,201'])

        proxy = start.call_args[0][0]
        assert proxy.options.target == 'http://api.test'
        assert proxy.options.status_filter == [200, 201]
        assert proxy.output_path == output.resolve()
        assert proxy.path_filter.matches('/api/users') is True

    def test_record_bad_include(self, tmp_path):
        """Test an invalid include regex exits 1."""
        with pytest.raises(SystemExit) as exc:
            main(['record', '-t', 'http://api.test', '-o', str(tmp_path / 's.json'), '--include', '/([/'])

        assert exc.value.code == 1

    def test_replay(self, tmp_path):
        """Test replay loads the session and starts the server."""
        path = tmp_path / 'session.json'
        path.write_text(json.dumps(RecordingSession(target='http://api.test').to_dict()))

        with patch.object(ReplayServer, 'start', autospec=True) as start:
            main(['replay', str(path), '--loop', '--latency', '-p', '4003'])

        server = start.call_args[0][0]
        assert server.engine.loop is True
        assert server.latency is True
        assert server.port == 4003

    def test_replay_missing(self, tmp_path, capsys):
        """Test a missing recording exits 1."""
        with pytest.raises(SystemExit) as exc:
            main(['replay', str(tmp_path / 'nope.json')])

        assert exc.value.code == 1
        assert 'Failed to load recording' in capsys.readouterr().err
