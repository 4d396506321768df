"""Server-rendered web starter with built-in identity and PostgreSQL.

This package contains the runtime glue for the starter: configuration and
connection-string resolution, the service registry, the HTTP pipeline, the
identity core and the startup migration runner.
"""

__version__ = "0.1.0"
