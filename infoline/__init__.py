"""InfoLine: school data collection with an approval workflow."""

__version__ = "0.1.0"
