"""sdk - shared kit for codereg services

Contains reusable modules for:
    - logging: hierarchical structured logging with service context
"""

__version__ = "1.0"
