"""CI coordination helpers for visual regression test runs on GitHub Actions."""

__version__ = "0.1.0"
