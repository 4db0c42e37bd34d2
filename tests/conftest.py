"""Shared fixtures: a fake /etc tree and a fake sysctl binary."""

import os

import pytest

from bbr_tune import BbrTuner, Settings, parse_sysctl_text


class FakeSysctl:
    """Stands in for BbrTuner._run_command and records every call"""

    def __init__(self, fail_reload=False, runtime=None):
        self.fail_reload = fail_reload
        self.runtime = dict(runtime or {})
        self.calls = []

    def __call__(self, cmd, timeout=30):
        self.calls.append(list(cmd))
        if cmd[:2] == ['sysctl', '-p']:
            if self.fail_reload:
                return 255, '', 'sysctl: cannot stat /proc/sys/net/ipv4/tcp_congestion_control: Invalid argument\n'
            with open(cmd[2]) as f:
                self.runtime.update(parse_sysctl_text(f.read()))
            return 0, '', ''
        if cmd[:2] == ['sysctl', '-n']:
            key = cmd[2]
            if key not in self.runtime:
                return 255, '', f'sysctl: cannot stat /proc/sys/{key.replace(".", "/")}: No such file or directory\n'
            return 0, self.runtime[key] + '\n', ''
        if cmd == ['sysctl', '--system']:
            return 0, '', ''
        raise AssertionError(f'unexpected command: {cmd}')


def snapshot(root):
    """Map of relative path -> file content for everything under root"""
    result = {}
    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = os.path.relpath(dirpath, root)
        result[rel_dir + '/'] = None
        for name in filenames:
            path = os.path.join(dirpath, name)
            with open(path) as f:
                result[os.path.join(rel_dir, name)] = f.read()
    return result


@pytest.fixture
def host(tmp_path):
    etc = tmp_path / 'etc'
    sysctl_d = etc / 'sysctl.d'
    sysctl_d.mkdir(parents=True)
    (etc / 'debian_version').write_text('13.1\n')
    (etc / 'sysctl.conf').write_text('vm.swappiness = 10\n')
    (sysctl_d / '10-old.conf').write_text('net.ipv4.ip_forward = 1\n')
    (sysctl_d / '99-sysctl.conf').write_text('net.ipv4.tcp_congestion_control = cubic\n')
    return tmp_path


@pytest.fixture
def settings(host):
    etc = host / 'etc'
    return Settings(
        sysctl_conf=str(etc / 'sysctl.conf'),
        sysctl_dir=str(etc / 'sysctl.d'),
        debian_marker=str(etc / 'debian_version'),
        backup_root=str(host / 'backups'),
    )


@pytest.fixture
def fake_sysctl():
    return FakeSysctl()


@pytest.fixture
def make_tuner(monkeypatch, settings, fake_sysctl):
    def factory(answers=(), root=True, runner=None, dry_run=False, tuner_settings=None):
        replies = iter(answers)
        tuner = BbrTuner(settings=tuner_settings or settings, no_color=True, dry_run=dry_run,
                         input_func=lambda prompt='': next(replies))
        monkeypatch.setattr(tuner, '_run_command', runner or fake_sysctl)
        monkeypatch.setattr(tuner, '_is_root', lambda: root)
        return tuner
    return factory
