"""
GMS - Goal Management System.

Stores goals with nested task trees and serves them to agents over MCP.
"""

__version__ = "0.1.0"
