"""Command-line host for ebdeploy (``ebdeploy deploy``, ``ebdeploy status``)."""
