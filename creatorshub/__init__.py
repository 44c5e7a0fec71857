"""
CreatorsHub client: async API access and session persistence.
"""

__version__ = "0.1.0"
