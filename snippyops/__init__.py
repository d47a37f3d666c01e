"""snippyops - deployment and SSL provisioning tool for the Snippy API."""

__version__ = "0.1.0"
__author__ = "Snippy Team"
