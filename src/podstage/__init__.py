"""podstage: daemon-less pod lifecycle engine."""

__version__ = "0.1.0"
