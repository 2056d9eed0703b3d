"""iocscout: hunt GitHub for threat-actor artifacts and indicators of compromise."""

__version__ = "0.1.0"
