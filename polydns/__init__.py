"""polydns - one client contract over many DNS vendor APIs."""

__version__ = "0.1.0"
