"""cronclaw — chat assistant whose replies can schedule jobs, save files and remember facts."""

__version__ = "0.1.0"
