"""
Tests for the preflight package.

Covers:
  - BaseCheck.execute() safety net
  - BaseCheck.shell() error handling
  - parse_os_release / PlatformCheck: supported, unsupported, undetectable
  - ToolCheck: present, installed on demand, install failure
  - run_preflight: narration, PlatformError vs PreflightError, stop on fatal
"""

from unittest.mock import patch

import pytest

from conftest import make_console
from easy.config import Settings
from easy.errors import PlatformError, PreflightError
from easy.preflight.base import BaseCheck, CheckResult
from easy.preflight.platform import PlatformCheck, parse_os_release
from easy.preflight.runner import collect_checks, run_preflight
from easy.preflight.tools import ToolCheck


# ── Concrete check stubs ──────────────────────────────────────────────────────

class _AlwaysPass(BaseCheck):
    id = "always_pass"
    name = "Always Pass"

    def run(self) -> CheckResult:
        return self._pass("All good")


class _AlwaysCrash(BaseCheck):
    id = "always_crash"
    name = "Always Crash"

    def run(self) -> CheckResult:
        raise RuntimeError("boom")


def _platform_check(tmp_path, text, settings=None):
    path = tmp_path / "os-release"
    if text is not None:
        path.write_text(text)
    check = PlatformCheck(settings)
    check.os_release_path = path
    return check


FEDORA = 'NAME="Fedora Linux"\nVERSION_ID=40\nID=fedora\nPRETTY_NAME="Fedora Linux 40 (Workstation Edition)"\n'
UBUNTU = 'NAME="Ubuntu"\nID=ubuntu\nID_LIKE=debian\nPRETTY_NAME="Ubuntu 24.04 LTS"\n'


# ── BaseCheck ─────────────────────────────────────────────────────────────────

class TestBaseCheck:
    def test_pass_result(self):
        r = _AlwaysPass().execute()
        assert r.status == "pass"
        assert not r.fatal
        assert isinstance(r.data, dict)

    def test_exception_in_run_returns_error_not_raise(self):
        r = _AlwaysCrash().execute()
        assert r.status == "error"
        assert r.fatal
        assert "always_crash" in r.message
        assert "boom" in r.message

    def test_remedy_attached_only_to_failures(self):
        class _Remedied(_AlwaysPass):
            remedy = "Do the thing."

        check = _Remedied()
        assert check._pass("ok").remedy == ""
        assert check._critical("bad").remedy == "Do the thing."
        assert check._error("broken").remedy == "Do the thing."

    def test_default_settings(self):
        assert _AlwaysPass().settings == Settings()


class TestShellHelper:
    def test_successful_command_returns_rc_0_and_stdout(self):
        rc, out, err = _AlwaysPass().shell(["echo", "hello"])
        assert rc == 0
        assert "hello" in out
        assert err == ""

    def test_missing_binary_returns_negative_one(self):
        rc, out, err = _AlwaysPass().shell(["this_command_definitely_does_not_exist_9999"])
        assert rc == -1
        assert out == ""
        assert "not found" in err

    def test_timeout_returns_negative_one_with_message(self):
        rc, _out, err = _AlwaysPass().shell(["sleep", "10"], timeout=1)
        assert rc == -1
        assert "timed out" in err.lower()


# ── Platform ──────────────────────────────────────────────────────────────────

class TestParseOsRelease:
    def test_quoted_and_bare_values(self):
        info = parse_os_release(FEDORA)
        assert info["ID"] == "fedora"
        assert info["VERSION_ID"] == "40"
        assert info["PRETTY_NAME"] == "Fedora Linux 40 (Workstation Edition)"

    def test_comments_blank_and_garbage_lines(self):
        info = parse_os_release("# comment\n\nnot a pair\nID='fedora'\nBROKEN=\"unterminated\n")
        assert info == {"ID": "fedora"}


class TestPlatformCheck:
    def test_fedora_passes(self, tmp_path):
        r = _platform_check(tmp_path, FEDORA).execute()
        assert r.status == "pass"
        assert "Fedora Linux 40" in r.message

    def test_other_distribution_is_critical(self, tmp_path):
        r = _platform_check(tmp_path, UBUNTU).execute()
        assert r.status == "critical"
        assert "Ubuntu" in r.message
        assert "Fedora" in r.remedy

    def test_missing_os_release_is_critical(self, tmp_path):
        r = _platform_check(tmp_path, None).execute()
        assert r.status == "critical"
        assert "detection failed" in r.message

    def test_os_release_without_id_is_critical(self, tmp_path):
        r = _platform_check(tmp_path, 'NAME="Mystery"\n').execute()
        assert r.status == "critical"

    def test_supported_platforms_come_from_settings(self, tmp_path):
        settings = Settings(supported_platforms=("fedora", "ubuntu"))
        assert _platform_check(tmp_path, UBUNTU, settings).execute().status == "pass"


# ── Tools ─────────────────────────────────────────────────────────────────────

class TestToolCheck:
    def test_present_tool_passes(self):
        r = ToolCheck("sh").execute()
        assert r.status == "pass"
        assert r.id == "tool_sh"

    def test_missing_tool_is_installed(self):
        check = ToolCheck("git", Settings(install_command=("true",)))
        with patch.object(ToolCheck, "has_tool", side_effect=[False, True]), \
             patch.object(ToolCheck, "shell", return_value=(0, "", "")) as shell:
            r = check.execute()
        assert r.status == "pass"
        assert r.data == {"installed": True}
        assert shell.call_args.args[0] == ["true", "git"]

    def test_install_failure_is_critical(self):
        check = ToolCheck("no_such_tool_easy_test", Settings(install_command=("false",)))
        r = check.execute()
        assert r.status == "critical"
        assert "could not be installed" in r.message
        assert "false no_such_tool_easy_test" in r.remedy

    def test_no_install_command_is_critical(self):
        check = ToolCheck("no_such_tool_easy_test", Settings(install_command=()))
        assert check.execute().status == "critical"


# ── run_preflight ─────────────────────────────────────────────────────────────

class TestRunPreflight:
    def test_collect_checks_platform_first(self):
        checks = collect_checks(Settings(required_tools=("git", "curl")))
        assert [c.id for c in checks] == ["platform", "tool_git", "tool_curl"]

    def test_all_pass(self, tmp_path):
        con, buf = make_console()
        results = run_preflight(
            Settings(), con, checks=[_platform_check(tmp_path, FEDORA), ToolCheck("sh")]
        )
        assert [r.status for r in results] == ["pass", "pass"]
        assert "Host Platform" in buf.getvalue()

    def test_platform_failure_raises_platform_error(self, tmp_path):
        con, _ = make_console()
        tool = ToolCheck("sh")
        with patch.object(tool, "execute") as tool_execute:
            with pytest.raises(PlatformError) as exc:
                run_preflight(Settings(), con, checks=[_platform_check(tmp_path, UBUNTU), tool])
        tool_execute.assert_not_called()
        assert "Ubuntu" in str(exc.value)
        assert exc.value.phase == "preflight"

    def test_tool_failure_raises_preflight_error(self, tmp_path):
        con, _ = make_console()
        tool = ToolCheck("no_such_tool_easy_test", Settings(install_command=()))
        with pytest.raises(PreflightError) as exc:
            run_preflight(Settings(), con, checks=[_platform_check(tmp_path, FEDORA), tool])
        assert not isinstance(exc.value, PlatformError)
        assert "no_such_tool_easy_test" in str(exc.value)
