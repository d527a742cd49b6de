"""
Module execution subsystem for EASY.

Modules:
  relay.py       — OutputRelay: cancellable thread relaying a child's output,
                   line by line, with terminal escape sequences removed.
  supervisor.py  — ExecutionSupervisor: runs selected modules one at a time
                   and releases every per-module resource, whatever happens.
"""
