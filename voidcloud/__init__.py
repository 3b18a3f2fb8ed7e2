"""Log in to the Void Cloud Platform and deploy game builds to it."""

__version__ = "0.0.1"