"""Career journey controller: sequences remote AI career-advisory stages."""

__version__ = "0.1.0"
