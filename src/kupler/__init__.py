"""
Kupler - borrow globally linked node modules under local names.

Publishes modules installed in Kupler's own install root to the package
manager's global pool and links them into projects, optionally under an
alias, without editing the project's package.json.
"""

__version__ = "1.2.0"
__author__ = "Kupler contributors"
