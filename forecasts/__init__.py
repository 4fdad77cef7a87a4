"""Monte Carlo delivery forecasts for dependency-ordered projects and team throughput."""

__version__ = "0.1.0"
