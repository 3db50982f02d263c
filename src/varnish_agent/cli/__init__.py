"""
CLI - Command-line entry point of the agent.

Usage:
    varnish-agent [-p directory] [-H directory] [-n name] [-S file]
        [-T host:port] [-t timeout] [-c port] [-b address] [-h] [-d]

Example:
    # Run in the foreground, API on port 9000
    $ varnish-agent -d -c 9000
    Plugins initialized. Debug mode (-d), not forking.
    Starting plugins: pingd logd vadmin httpd echo status vcl html params ban varnishstat vlog
"""

from .main import main

__all__ = ["main"]
