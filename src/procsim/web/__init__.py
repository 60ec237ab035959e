"""Browser-facing JSON API for procsim.

This package provides a Flask application that exposes a simulation
over HTTP.  It is an **optional** extra. Install with::

    pip install procsim[web]

The ``create_app`` factory in ``app.py`` boots a simulation and serves
the process table, the memory map, scheduler controls, and the shell.
"""
