"""Training data preparation for the header and fingerprint generator networks"""

__version__ = "0.1.0"
