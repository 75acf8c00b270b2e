"""
Cat Fishing
===========

Simulation core of a hook-and-reel arcade game: a cat drops a hook into a
pond, catches fish, dodges obstacles and collects power-ups before the clock
runs out.

All tunable parameters live in game_config.yaml. Rendering, audio and menus
are external and talk to the core through fishing_core.CoreGame.

The core only creates loggers. Host applications (a renderer, a training
script) set up output once at startup:

    from cat_fishing.logging_config import configure_logging
    from cat_fishing.fishing_core import CoreGame

    configure_logging()          # level from CAT_FISHING_LOG_LEVEL, default INFO
    game = CoreGame(seed=0)
"""
