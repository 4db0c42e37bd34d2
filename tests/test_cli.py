import os

import pytest

import bbr_tune
from conftest import FakeSysctl, snapshot


@pytest.fixture
def config_file(tmp_path, settings):
    path = tmp_path / 'tune.yaml'
    path.write_text(f"""
sysctl_conf: {settings.sysctl_conf}
sysctl_dir: {settings.sysctl_dir}
debian_marker: {settings.debian_marker}
backup_root: {settings.backup_root}
""")
    return str(path)


@pytest.fixture
def system(monkeypatch):
    runner = FakeSysctl()
    monkeypatch.setattr(bbr_tune.BbrTuner, '_run_command', lambda self, cmd, timeout=30: runner(cmd))
    monkeypatch.setattr(bbr_tune.BbrTuner, '_is_root', lambda self: True)
    return runner


def test_interactive_run(monkeypatch, config_file, settings, system):
    answers = iter(['y', '1'])
    monkeypatch.setattr('builtins.input', lambda prompt='': next(answers))

    assert bbr_tune.main(['--config', config_file, '--no-color']) == 0
    assert os.listdir(settings.sysctl_dir) == ['99-sysctl.conf']


def test_non_interactive_flags(config_file, settings, system):
    assert bbr_tune.main(['--config', config_file, '--yes', '--ipv6', 'enable']) == 0
    with open(settings.config_path) as f:
        assert 'net.ipv6.conf.all.accept_ra = 2' in f.read()


def test_non_root(monkeypatch, config_file, host, system):
    monkeypatch.setattr(bbr_tune.BbrTuner, '_is_root', lambda self: False)
    before = snapshot(host)

    assert bbr_tune.main(['--config', config_file, '--yes', '--ipv6', 'skip']) == 1
    assert snapshot(host) == before


def test_bad_config(tmp_path, capsys):
    path = tmp_path / 'bad.yaml'
    path.write_text('unknown_key: 1\n')

    assert bbr_tune.main(['--config', str(path)]) == 1
    assert 'Unknown settings' in capsys.readouterr().err


def test_ctrl_c(monkeypatch, config_file, system, capsys):
    def interrupt(prompt=''):
        raise KeyboardInterrupt

    monkeypatch.setattr('builtins.input', interrupt)
    assert bbr_tune.main(['--config', config_file]) == 1
    assert 'Operation cancelled by user' in capsys.readouterr().out


def test_restore_flag(config_file, settings, system):
    assert bbr_tune.main(['--config', config_file, '--yes', '--ipv6', 'disable']) == 0
    backup = os.path.join(settings.backup_root, os.listdir(settings.backup_root)[0])

    assert bbr_tune.main(['--config', config_file, '--yes', '--restore', backup]) == 0
    assert system.calls[-1] == ['sysctl', '--system']
    assert os.path.exists(settings.sysctl_conf)


def test_version(capsys):
    with pytest.raises(SystemExit) as excinfo:
        bbr_tune.main(['--version'])
    assert excinfo.value.code == 0
    assert 'v1.0.0' in capsys.readouterr().out


def test_bad_override_rejected_before_any_change(tmp_path, config_file, host, system, capsys):
    with open(config_file, 'a') as f:
        f.write('overrides:\n  vm.swappiness:\n  net.core.somaxconn: {a: 1}\n')
    before = snapshot(host)

    assert bbr_tune.main(['--config', config_file, '--yes', '--ipv6', 'skip']) == 1
    assert snapshot(host) == before
    assert system.calls == []
    assert "Override 'vm.swappiness'" in capsys.readouterr().err
