"""Move files between spool directories and remote stations over VARA and ARDOP HF modems."""

__version__ = "0.5.0"