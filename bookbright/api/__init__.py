"""HTTP API админки и витрины (FastAPI).

    from bookbright.api import create_app
"""

from bookbright.api.app import create_app

__all__ = ["create_app"]
