"""
Preflight checks — one-shot environment preconditions.

Modules:
  base.py      — CheckResult dataclass + BaseCheck ABC.
  platform.py  — host platform detection (/etc/os-release).
  tools.py     — required command-line tools, installed on demand.
  runner.py    — run_preflight(): narrate results, raise on fatal ones.
"""
