"""
Command Line Interface for SiteChat

This package provides command line argument parsing and validation.

Classes:
    CLIManager: Command line interface manager
"""

from sitechat.cli.arguments import CLIManager

__all__ = ['CLIManager']
