#!/usr/bin/env python3
"""
Debian BBR Tuning Tool
======================

A CLI tool that replaces the sysctl configuration of a Debian host with a
fixed network tuning profile: BBR congestion control, the fq queue
discipline, ECN, socket buffer sizing and an optional IPv6 policy.

Version: 1.0.0
License: MIT
Python: 3.8+

Steps:
- Privilege and distribution checks
- Timestamped backup of /etc/sysctl.conf and /etc/sysctl.d/
- Clean slate: legacy file removed, fragment directory recreated empty
- New /etc/sysctl.d/99-sysctl.conf written atomically
- Interactive IPv6 policy (disable / enable / skip)
- sysctl reload and read-back verification
- Manual restore from a backup directory
"""

import argparse
import logging
import os
import shutil
import subprocess
import sys
import tempfile
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

import yaml

from sysctl_blocks import base as base_block
from sysctl_blocks import ipv6 as ipv6_block

# Tool version
VERSION = "1.0.0"

# Color codes for terminal output
class Colors:
    RED = '\033[91m'
    YELLOW = '\033[93m'
    CYAN = '\033[96m'
    BOLD = '\033[1m'
    RESET = '\033[0m'

    BRIGHT_RED = '\033[1;31m'
    BRIGHT_GREEN = '\033[1;32m'
    BRIGHT_YELLOW = '\033[1;33m'
    BRIGHT_BLUE = '\033[1;34m'

class Severity(Enum):
    """Severity levels for status lines"""
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"

class ColorManager:
    """Manages color output based on terminal capabilities and user preferences"""

    def __init__(self):
        self.colors_enabled = self._should_use_colors()

    def _should_use_colors(self) -> bool:
        """Determine if colors should be used based on terminal and environment"""
        # Check NO_COLOR environment variable (per no-color.org)
        if os.environ.get('NO_COLOR'):
            return False

        if not sys.stdout.isatty():
            return False

        term = os.environ.get('TERM', '')
        if term in ['dumb', 'unknown']:
            return False

        return True

    def set_colors_enabled(self, enabled: bool):
        """Override color settings (for --no-color flag)"""
        self.colors_enabled = enabled

    def color(self, color_code: str, text: str) -> str:
        """Apply specific color if colors are enabled"""
        if not self.colors_enabled:
            return text
        return f"{color_code}{text}{Colors.RESET}"

    def status(self, severity: Severity, message: str) -> str:
        """Format a status line with a colored severity label"""
        color_map = {
            Severity.INFO: Colors.BRIGHT_BLUE,
            Severity.SUCCESS: Colors.BRIGHT_GREEN,
            Severity.WARNING: Colors.BRIGHT_YELLOW,
            Severity.ERROR: Colors.BRIGHT_RED,
        }
        label = self.color(color_map[severity], f"[{severity.value}]")
        return f"{label} {message}"


class TunerError(Exception):
    """Base class for tuning failures"""

class PreconditionError(TunerError):
    """Host is not eligible: not root, not Linux or not Debian"""

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.hint = hint

class BackupError(TunerError):
    """Existing configuration could not be backed up or restored"""

class ApplyError(TunerError):
    """sysctl failed to load the written configuration"""

class ConfigError(TunerError):
    """Settings file is missing or invalid"""

class DuplicateKeyError(TunerError):
    """A sysctl key was added twice to the same configuration"""

class InvalidMenuChoice(TunerError):
    """Menu answer outside of the offered choices"""

    def __init__(self, choice: str):
        super().__init__(f"Invalid choice: {choice!r}")
        self.choice = choice


class Ipv6Policy(Enum):
    """IPv6 policy appended after the base block"""
    DISABLE = "disable"
    ENABLE = "enable"
    SKIP = "skip"

MENU_CHOICES = {
    '1': Ipv6Policy.DISABLE,
    '2': Ipv6Policy.ENABLE,
    '3': Ipv6Policy.SKIP,
}

@dataclass
class SysctlEntry:
    """Single key = value line"""
    key: str
    value: str
    comment: Optional[str] = None

    def render_lines(self) -> List[str]:
        lines = []
        if self.comment:
            lines.append(f"# {self.comment}")
        lines.append(f"{self.key} = {self.value}")
        return lines

@dataclass
class SysctlSection:
    """Entries grouped under a comment header"""
    title: str
    entries: List[SysctlEntry] = field(default_factory=list)

@dataclass
class SysctlConfig:
    """Ordered sysctl configuration file with unique keys"""
    header: List[str] = field(default_factory=list)
    sections: List[SysctlSection] = field(default_factory=list)

    def _find(self, key: str) -> Optional[SysctlEntry]:
        for section in self.sections:
            for entry in section.entries:
                if entry.key == key:
                    return entry
        return None

    def keys(self) -> List[str]:
        return [entry.key for section in self.sections for entry in section.entries]

    def get(self, key: str) -> Optional[str]:
        entry = self._find(key)
        return entry.value if entry else None

    def add_section(self, title: str, pairs: List[Tuple[str, str]]) -> SysctlSection:
        """Append a section, rejecting keys already present in the file"""
        seen = set(self.keys())
        section = SysctlSection(title)
        for key, value in pairs:
            if key in seen:
                raise DuplicateKeyError(f"Duplicate sysctl key: {key}")
            seen.add(key)
            section.entries.append(SysctlEntry(key, str(value)))
        self.sections.append(section)
        return section

    def set(self, key: str, value: str, section_title: str = "Overrides") -> None:
        """Replace the value of an existing key in place, or append it"""
        entry = self._find(key)
        if entry:
            if entry.value != str(value):
                entry.comment = f"Override of default {entry.value}"
                entry.value = str(value)
            return
        for section in self.sections:
            if section.title == section_title:
                section.entries.append(SysctlEntry(key, str(value)))
                return
        self.sections.append(SysctlSection(section_title, [SysctlEntry(key, str(value))]))

    def render(self) -> str:
        lines = [f"# {line}" for line in self.header]
        for section in self.sections:
            if not section.entries:
                continue
            if lines:
                lines.append('')
            lines.append(f"# {section.title}")
            for entry in section.entries:
                lines.extend(entry.render_lines())
        return '\n'.join(lines) + '\n'

@dataclass
class VerifyResult:
    """Runtime value read back after the reload"""
    key: str
    expected: str
    actual: Optional[str]

    @property
    def matches(self) -> bool:
        return self.actual == self.expected

@dataclass
class TuneResult:
    """Outcome of one tuning run, used by the summary"""
    backup_path: Optional[str] = None
    ipv6_policy: Optional[Ipv6Policy] = None
    cleaned: bool = False
    base_written: bool = False
    written: bool = False
    applied: bool = False
    verification: List[VerifyResult] = field(default_factory=list)
    error: Optional[str] = None

@dataclass
class Settings:
    """Paths and defaults, optionally loaded from a YAML file"""
    sysctl_conf: str = '/etc/sysctl.conf'
    sysctl_dir: str = '/etc/sysctl.d'
    config_name: str = '99-sysctl.conf'
    debian_marker: str = '/etc/debian_version'
    backup_root: str = '/var/backups'
    ipv6: Optional[str] = None
    assume_yes: bool = False
    overrides: Dict[str, str] = field(default_factory=dict)

    @property
    def config_path(self) -> str:
        return os.path.join(self.sysctl_dir, self.config_name)


def parse_sysctl_text(text: str) -> Dict[str, str]:
    """Parse sysctl.conf grammar into an ordered key -> value mapping"""
    params = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith('#') or line.startswith(';'):
            continue
        if '=' in line:
            key, value = line.split('=', 1)
            params[key.strip()] = value.strip()
    return params

def build_base_config(generated_at: datetime) -> SysctlConfig:
    """Base tuning block with the generation timestamp in the header"""
    config = SysctlConfig(header=[
        f"Network tuning generated by bbr_tune on {generated_at.strftime('%Y-%m-%d %H:%M:%S')}",
        "BBR congestion control, fq queue discipline, ECN and TCP buffer tuning",
    ])
    for title, pairs in base_block.sections():
        config.add_section(title, pairs)
    return config

def add_ipv6_block(config: SysctlConfig, policy: Ipv6Policy) -> None:
    for title, pairs in ipv6_block.sections(policy.value):
        config.add_section(title, pairs)

def apply_overrides(config: SysctlConfig, overrides: Dict[str, str]) -> None:
    for key, value in overrides.items():
        config.set(key, value)

def _setting_value(name: str, value, expected_type):
    if not isinstance(value, expected_type):
        raise ConfigError(f"Setting '{name}' must be of type {expected_type.__name__}, got {type(value).__name__}")
    return value

def _sysctl_key(key) -> str:
    key = str(key)
    if not key or '=' in key or any(c.isspace() for c in key):
        raise ConfigError(f"Invalid sysctl key in 'overrides': {key!r}")
    return key

def _sysctl_value(key: str, value) -> str:
    # YAML turns 1 into int and yes/true into bool; sysctl wants the literal
    if isinstance(value, bool):
        return '1' if value else '0'
    if isinstance(value, (int, float, str)):
        return str(value)
    if isinstance(value, list) and value and all(
            isinstance(v, (int, float, str)) and not isinstance(v, bool) for v in value):
        return ' '.join(str(v) for v in value)
    raise ConfigError(f"Override '{key}' must be a number, string or list of numbers, "
                      f"got {type(value).__name__}")

def load_settings(config_path: str) -> Settings:
    """Load settings from a YAML file"""
    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {config_path}")
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load config from {config_path}: {e}") from e

    settings = Settings()
    if data is None:
        return settings
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")

    known = {f.name for f in fields(Settings)}
    unknown = sorted(str(key) for key in set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown settings in {config_path}: {', '.join(unknown)}")

    for name in ('sysctl_conf', 'sysctl_dir', 'config_name', 'debian_marker', 'backup_root'):
        if name in data:
            setattr(settings, name, _setting_value(name, data[name], str))

    if data.get('ipv6') is not None:
        ipv6 = _setting_value('ipv6', data['ipv6'], str).lower()
        if ipv6 not in [policy.value for policy in Ipv6Policy]:
            raise ConfigError(f"Setting 'ipv6' must be one of disable, enable, skip; got {ipv6!r}")
        settings.ipv6 = ipv6

    if 'assume_yes' in data:
        settings.assume_yes = _setting_value('assume_yes', data['assume_yes'], bool)

    overrides = data.get('overrides') or {}
    if not isinstance(overrides, dict):
        raise ConfigError("Setting 'overrides' must be a mapping of sysctl keys to values")
    for key, value in overrides.items():
        key = _sysctl_key(key)
        settings.overrides[key] = _sysctl_value(key, value)

    return settings

def parse_ipv6_choice(answer: str) -> Ipv6Policy:
    """Validate one menu answer"""
    policy = MENU_CHOICES.get(answer.strip())
    if policy is None:
        raise InvalidMenuChoice(answer)
    return policy

def prompt_ipv6_policy(input_func: Callable[[str], str] = input,
                       max_attempts: Optional[int] = None) -> Ipv6Policy:
    """Ask for the IPv6 policy, re-prompting on invalid input.

    With max_attempts=None the prompt repeats until a valid answer is given;
    otherwise InvalidMenuChoice propagates once the attempts are used up.
    """
    print()
    print("IPv6 configuration options:")
    print("  1) Disable IPv6")
    print("  2) Enable IPv6 (with forwarding and router advertisement tuning)")
    print("  3) Skip IPv6 configuration")

    attempts = 0
    while True:
        attempts += 1
        try:
            return parse_ipv6_choice(input_func("Select IPv6 configuration [1-3]: "))
        except InvalidMenuChoice as e:
            if max_attempts is not None and attempts >= max_attempts:
                raise
            print(f"{e}, please enter 1-3")

def confirm(prompt: str, input_func: Callable[[str], str] = input) -> bool:
    return input_func(prompt).strip().lower() in ['y', 'yes']


class BbrTuner:
    """Backs up, replaces and applies the sysctl configuration"""

    def __init__(self, settings: Optional[Settings] = None, verbose: bool = False,
                 no_color: bool = False, dry_run: bool = False,
                 input_func: Optional[Callable[[str], str]] = None):
        self.settings = settings or Settings()
        self.verbose = verbose
        self.dry_run = dry_run
        self.input_func = input_func or input
        self.logger = self._setup_logging()
        self.color_manager = ColorManager()

        # Override color settings if --no-color flag is used
        if no_color:
            self.color_manager.set_colors_enabled(False)

    def _setup_logging(self) -> logging.Logger:
        """Configure logging"""
        logger = logging.getLogger('bbr_tune')
        logger.setLevel(logging.DEBUG if self.verbose else logging.WARNING)

        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)

        return logger

    def _run_command(self, cmd: List[str], timeout: int = 30) -> Tuple[int, str, str]:
        """Execute system command with timeout and error handling"""
        try:
            self.logger.debug(f"Executing command: {' '.join(cmd)}")

            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout
            )

            self.logger.debug(f"Command exit code: {result.returncode}")
            if result.stdout:
                self.logger.debug(f"Command stdout: {result.stdout[:500]}...")
            if result.stderr:
                self.logger.debug(f"Command stderr: {result.stderr[:500]}...")

            return result.returncode, result.stdout, result.stderr

        except subprocess.TimeoutExpired:
            self.logger.error(f"Command timed out after {timeout}s: {' '.join(cmd)}")
            return -1, "", f"Command timed out after {timeout}s"
        except FileNotFoundError as e:
            self.logger.error(f"Required command not found: {' '.join(cmd)}")
            return -1, "", str(e)

    def _is_root(self) -> bool:
        """Check if running as root"""
        return os.geteuid() == 0

    def _status(self, severity: Severity, message: str):
        print(self.color_manager.status(severity, message))

    def check_preflight(self) -> str:
        """Check platform, privileges and distribution; return the Debian version"""
        if not sys.platform.startswith('linux'):
            raise PreconditionError("This tool only runs on Linux")

        if not self.dry_run and not self._is_root():
            raise PreconditionError("This tool requires root privileges",
                                    hint="Run it with: sudo bbr-tune")

        marker = self.settings.debian_marker
        if not os.path.isfile(marker):
            raise PreconditionError(f"This tool only supports Debian ({marker} not found)")

        with open(marker, 'r') as f:
            debian_version = f.read().strip()
        self._status(Severity.INFO, f"Detected Debian version: {debian_version}")
        return debian_version

    def create_backup(self, now: Optional[datetime] = None) -> str:
        """Copy the current sysctl configuration into a timestamped directory"""
        timestamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
        base_path = os.path.join(self.settings.backup_root, f"sysctl-backup-{timestamp}")
        backup_path = base_path
        suffix = 1

        try:
            os.makedirs(self.settings.backup_root, exist_ok=True)
            while True:
                try:
                    os.mkdir(backup_path)
                    break
                except FileExistsError:
                    backup_path = f"{base_path}.{suffix}"
                    suffix += 1

            if os.path.isfile(self.settings.sysctl_conf):
                shutil.copy2(self.settings.sysctl_conf, os.path.join(backup_path, 'sysctl.conf'))
                self.logger.debug(f"Backed up {self.settings.sysctl_conf}")

            if os.path.isdir(self.settings.sysctl_dir):
                shutil.copytree(self.settings.sysctl_dir, os.path.join(backup_path, 'sysctl.d'),
                                symlinks=True)
                self.logger.debug(f"Backed up {self.settings.sysctl_dir}")

        except OSError as e:
            self.logger.error(f"Failed to create backup in {backup_path}: {e}")
            raise BackupError(f"Failed to back up sysctl configuration: {e}") from e

        self._status(Severity.SUCCESS, f"Backup created: {backup_path}")
        return backup_path

    def clean_config(self):
        """Remove the legacy file and recreate the fragment directory empty"""
        self._status(Severity.INFO, "Cleaning old sysctl configuration...")
        conf = self.settings.sysctl_conf
        conf_dir = self.settings.sysctl_dir

        try:
            if os.path.isfile(conf) or os.path.islink(conf):
                os.remove(conf)
                self._status(Severity.SUCCESS, f"Removed {conf}")
            else:
                self._status(Severity.INFO, f"{conf} does not exist, nothing to remove")

            if os.path.isdir(conf_dir):
                shutil.rmtree(conf_dir)
                os.makedirs(conf_dir)
                self._status(Severity.SUCCESS, f"Cleared {conf_dir}/")
            else:
                os.makedirs(conf_dir)
                self._status(Severity.INFO, f"Created {conf_dir}/")
        except OSError as e:
            raise TunerError(f"Failed to clean old configuration: {e}") from e

    def _safe_write_file(self, file_path: str, content: str):
        """Write content to file atomically"""
        dir_path = os.path.dirname(file_path)
        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(mode='w', dir=dir_path, delete=False,
                                             prefix=f".{os.path.basename(file_path)}.tmp") as tmp_file:
                tmp_path = tmp_file.name
                tmp_file.write(content)
                tmp_file.flush()
                os.fsync(tmp_file.fileno())

            os.chmod(tmp_path, 0o644)
            os.rename(tmp_path, file_path)
            self.logger.debug(f"Successfully wrote {file_path}")
        except OSError:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def write_config(self, config: SysctlConfig):
        path = self.settings.config_path
        try:
            self._safe_write_file(path, config.render())
        except OSError as e:
            self.logger.error(f"Failed to write {path}: {e}")
            raise TunerError(f"Failed to write {path}: {e}") from e

    def choose_ipv6_policy(self) -> Ipv6Policy:
        if self.settings.ipv6:
            policy = Ipv6Policy(self.settings.ipv6)
            self._status(Severity.INFO, f"IPv6 policy from settings: {policy.value}")
            return policy
        return prompt_ipv6_policy(self.input_func)

    def apply_config(self):
        """Load the written file with sysctl -p"""
        path = self.settings.config_path
        self._status(Severity.INFO, "Applying new sysctl configuration...")
        code, stdout, stderr = self._run_command(['sysctl', '-p', path])
        if code != 0:
            details = (stderr or stdout).strip()
            raise ApplyError(f"sysctl -p {path} failed: {details}")
        self._status(Severity.SUCCESS, "sysctl configuration applied")

    def _read_sysctl(self, key: str) -> Optional[str]:
        code, stdout, stderr = self._run_command(['sysctl', '-n', key])
        if code != 0:
            self.logger.error(f"Failed to read sysctl parameter {key}: {stderr.strip()}")
            return None
        return stdout.strip()

    def verify_config(self, config: SysctlConfig) -> List[VerifyResult]:
        """Read back key runtime values; mismatches are only reported"""
        self._status(Severity.INFO, "Verifying BBR configuration...")
        results = []
        for key in base_block.VERIFY_KEYS:
            expected = config.get(key)
            if expected is None:
                continue
            result = VerifyResult(key, expected, self._read_sysctl(key))
            results.append(result)
            if result.matches:
                self._status(Severity.SUCCESS, f"{key} = {result.actual}")
            else:
                self._status(Severity.WARNING,
                             f"{key} is {result.actual or 'unreadable'}, expected {expected}")
                self.logger.warning(f"Sysctl verification failed for {key}: expected {expected}, got {result.actual}")

        if results and all(r.matches for r in results):
            self._status(Severity.SUCCESS, "BBR congestion control is active")
        else:
            self._status(Severity.WARNING, "Configuration may not have fully taken effect")
        return results

    def print_plan(self):
        verb = "Would" if self.dry_run else "Will"
        print()
        print(f"{verb} perform the following steps:")
        print(f"  1. Back up {self.settings.sysctl_conf} and {self.settings.sysctl_dir}/ "
              f"into {self.settings.backup_root}/")
        print(f"  2. Delete {self.settings.sysctl_conf}")
        print(f"  3. Clear {self.settings.sysctl_dir}/")
        print(f"  4. Create {self.settings.config_path}")
        print("  5. Enable BBR, fq and ECN tuning")
        print("  6. Configure IPv6 (optional)")
        print()

    def print_summary(self, result: TuneResult):
        title = "Configuration summary"
        print()
        print(self.color_manager.color(Colors.BOLD, f"==================== {title} ===================="))
        if result.cleaned:
            print(f"✓ Removed old {self.settings.sysctl_conf}")
            print(f"✓ Cleared {self.settings.sysctl_dir}/")
        if result.base_written:
            print(f"✓ Created {self.settings.config_path}")
            print("✓ BBR congestion control")
            print("✓ fq queue discipline")
            print("✓ ECN explicit congestion notification")
            print("✓ TCP buffer, backlog and timeout tuning")
        if result.written and result.ipv6_policy is not Ipv6Policy.SKIP:
            print(f"✓ IPv6 {result.ipv6_policy.value}d")
        if result.applied:
            print("✓ Loaded with sysctl -p")
        if result.verification:
            mismatched = [r.key for r in result.verification if not r.matches]
            if mismatched:
                print(self.color_manager.color(
                    Colors.YELLOW, f"⚠ Runtime values differ for: {', '.join(mismatched)}"))
            else:
                print(f"✓ Verified {len(result.verification)} runtime values")

        print()
        if result.backup_path:
            self._status(Severity.INFO, f"Backup of previous configuration: {result.backup_path}")
            print(f"  Restore with: bbr-tune --restore {result.backup_path}")
        else:
            self._status(Severity.WARNING, "No backup was recorded")

        if result.error:
            self._status(Severity.ERROR, f"Run did not complete: {result.error}")
            return

        print()
        self._status(Severity.INFO, "Commands to check the configuration:")
        print("  Current congestion control:   sysctl net.ipv4.tcp_congestion_control")
        print("  Available congestion control: sysctl net.ipv4.tcp_available_congestion_control")
        print("  Current queue discipline:     sysctl net.core.default_qdisc")
        print("  ECN status:                   sysctl net.ipv4.tcp_ecn")
        print("  All BBR related settings:     sysctl -a | grep bbr")
        print()

    def restore(self, backup_path: str):
        """Put a backup back in place and reload all sysctl files"""
        if not os.path.isdir(backup_path):
            raise BackupError(f"Backup directory not found: {backup_path}")

        conf_backup = os.path.join(backup_path, 'sysctl.conf')
        dir_backup = os.path.join(backup_path, 'sysctl.d')
        try:
            if os.path.isfile(conf_backup):
                shutil.copy2(conf_backup, self.settings.sysctl_conf)
                self._status(Severity.SUCCESS, f"Restored {self.settings.sysctl_conf}")
            elif os.path.isfile(self.settings.sysctl_conf):
                # Backup was taken when no legacy file existed
                os.remove(self.settings.sysctl_conf)

            if os.path.isdir(dir_backup):
                if os.path.isdir(self.settings.sysctl_dir):
                    shutil.rmtree(self.settings.sysctl_dir)
                shutil.copytree(dir_backup, self.settings.sysctl_dir, symlinks=True)
                self._status(Severity.SUCCESS, f"Restored {self.settings.sysctl_dir}/")
            elif os.path.isdir(self.settings.sysctl_dir):
                # Backup was taken when no fragment directory existed
                shutil.rmtree(self.settings.sysctl_dir)
                self._status(Severity.SUCCESS, f"Removed {self.settings.sysctl_dir}/")
        except OSError as e:
            raise BackupError(f"Failed to restore from {backup_path}: {e}") from e

        code, stdout, stderr = self._run_command(['sysctl', '--system'])
        if code != 0:
            raise ApplyError(f"sysctl --system failed: {(stderr or stdout).strip()}")
        self._status(Severity.SUCCESS, "Restored configuration reloaded")

    def _preflight_or_report(self) -> bool:
        try:
            self.check_preflight()
        except PreconditionError as e:
            self._status(Severity.ERROR, str(e))
            if e.hint:
                self._status(Severity.INFO, e.hint)
            return False
        return True

    def _simulate(self) -> int:
        policy = self.choose_ipv6_policy()
        config = build_base_config(datetime.now())
        add_ipv6_block(config, policy)
        apply_overrides(config, self.settings.overrides)
        print(self.color_manager.color(Colors.CYAN, f"→ Would write {self.settings.config_path}:"))
        for line in config.render().splitlines():
            print(f"    {line}")
        print(f"    Would run 'sysctl -p {self.settings.config_path}'")
        return 0

    def run(self) -> int:
        """Run the full tuning pipeline and return the exit code"""
        print("==================================================")
        print("          Debian BBR Tuning Tool")
        print("==================================================")
        if self.dry_run:
            print(self.color_manager.color(Colors.CYAN, "Dry-run mode: No system changes will be made"))
        print()

        if not self._preflight_or_report():
            return 1

        self.print_plan()
        if self.dry_run:
            return self._simulate()

        if not self.settings.assume_yes and not confirm("Continue? [y/N]: ", self.input_func):
            self._status(Severity.INFO, "Operation cancelled")
            return 0

        print()
        try:
            backup_path = self.create_backup()
        except BackupError as e:
            self._status(Severity.ERROR, str(e))
            self._status(Severity.INFO, "Nothing was changed")
            return 1

        result = TuneResult(backup_path=backup_path)
        try:
            self.clean_config()
            result.cleaned = True
            config = build_base_config(datetime.now())
            self.write_config(config)
            result.base_written = True
            self._status(Severity.SUCCESS, f"Base configuration written to {self.settings.config_path}")

            result.ipv6_policy = self.choose_ipv6_policy()
            add_ipv6_block(config, result.ipv6_policy)
            apply_overrides(config, self.settings.overrides)
            self.write_config(config)
            result.written = True
            if result.ipv6_policy is Ipv6Policy.DISABLE:
                self._status(Severity.SUCCESS, "IPv6 disabled")
            elif result.ipv6_policy is Ipv6Policy.ENABLE:
                self._status(Severity.SUCCESS, "IPv6 enabled and tuned")
            else:
                self._status(Severity.INFO, "Skipped IPv6 configuration")

            self.apply_config()
            result.applied = True
            result.verification = self.verify_config(config)
        except TunerError as e:
            result.error = str(e)
            self._status(Severity.ERROR, str(e))

        self.print_summary(result)
        if result.error:
            return 1

        self._status(Severity.SUCCESS,
                     "BBR tuning complete. A reboot is recommended to make sure every setting is in effect.")
        return 0

    def run_restore(self, backup_path: str) -> int:
        """Restore a backup and return the exit code"""
        if not self._preflight_or_report():
            return 1

        if self.dry_run:
            print(f"Would restore {self.settings.sysctl_conf} and {self.settings.sysctl_dir}/ from {backup_path}")
            print("Would run 'sysctl --system'")
            return 0

        if not self.settings.assume_yes and not confirm(
                f"Restore sysctl configuration from {backup_path}? [y/N]: ", self.input_func):
            self._status(Severity.INFO, "Operation cancelled")
            return 0

        try:
            self.restore(backup_path)
        except TunerError as e:
            self._status(Severity.ERROR, str(e))
            return 1
        return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    if sys.version_info < (3, 8):
        print("Error: This tool requires Python 3.8 or higher", file=sys.stderr)
        print(f"Current version: {sys.version}", file=sys.stderr)
        return 1

    parser = argparse.ArgumentParser(
        description="Apply BBR, fq, ECN and TCP buffer tuning to a Debian host",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                          # Interactive run
  %(prog)s --dry-run                # Show what would be written
  %(prog)s --yes --ipv6 disable     # Non-interactive run, IPv6 disabled
  %(prog)s --config tune.yaml       # Use custom paths and overrides
  %(prog)s --restore /var/backups/sysctl-backup-20250101-120000
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'Debian BBR Tuning Tool v{VERSION}'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose output'
    )

    parser.add_argument(
        '--no-color',
        action='store_true',
        help='Disable colored output'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Simulate changes without modifying system (show what would be done)'
    )

    parser.add_argument(
        '--config',
        help='Path to configuration YAML file'
    )

    parser.add_argument(
        '--yes', '-y',
        action='store_true',
        help='Do not ask for confirmation'
    )

    parser.add_argument(
        '--ipv6',
        choices=[policy.value for policy in Ipv6Policy],
        help='IPv6 policy to apply instead of asking'
    )

    parser.add_argument(
        '--restore',
        metavar='BACKUP_DIR',
        help='Restore sysctl configuration from a backup directory'
    )

    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config) if args.config else Settings()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.yes:
        settings.assume_yes = True
    if args.ipv6:
        settings.ipv6 = args.ipv6

    tuner = BbrTuner(
        settings=settings,
        verbose=args.verbose,
        no_color=args.no_color,
        dry_run=args.dry_run
    )

    try:
        if args.restore:
            return tuner.run_restore(args.restore)
        return tuner.run()
    except (KeyboardInterrupt, EOFError):
        print(f"\n{tuner.color_manager.color(Colors.YELLOW, 'Operation cancelled by user')}")
        return 1
    except Exception as e:
        print(f"\n{tuner.color_manager.color(Colors.RED, f'Error: {e}')}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1

if __name__ == '__main__':
    sys.exit(main())
