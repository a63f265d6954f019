"""Business modules for advisory.

Each module is self-contained and talks to infrastructure only through
the protocols exported by ``advisory.infrastructure``.
"""
