"""Built-in CLI sub-commands for oauthflow.

* :mod:`~oauthflow.commands.login` -- ``login``, ``refresh`` and ``revoke``.
* :mod:`~oauthflow.commands.profile` -- create, list, show and remove profiles.
* :mod:`~oauthflow.commands.config` -- view and modify global settings.

Each module either exports a :class:`typer.Typer` sub-application (for
multi-command groups like ``profile`` and ``config``) or plain callback
functions registered directly on the root app.
"""
