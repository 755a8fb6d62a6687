"""Built-in CLI commands for kubectl-login.

Each module exposes plain functions that :mod:`kubectl_login.app` registers
on the root Typer application:

- :mod:`~kubectl_login.commands.login` -- ``login``, ``logout``, ``status``.
- :mod:`~kubectl_login.commands.exec_credential` -- ``get-token``.
"""
