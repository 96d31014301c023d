"""DevTrend pipeline: weekly developer trend reports from GitHub and Reddit."""

__version__ = "0.1.0"
