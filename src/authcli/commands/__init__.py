"""Built-in CLI command groups registered by :func:`authcli.app.build_app`."""
