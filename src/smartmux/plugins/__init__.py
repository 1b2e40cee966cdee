"""Plugin package initialiser.

Keep this file lightweight; concrete plugins (``logging``) self-register when
imported (see ``smartmux.__init__`` for the eager import).
"""

__all__: list[str] = []
