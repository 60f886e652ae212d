"""Command line client for the sensor insights service.

The Typer application is ``cli.app.app``; the package root does not re-export it.
"""
