"""
Color Match Package
===================

Round and scoring engine for the Color Match reflex game. A target color
(optionally paired with a shape) is shown and the player picks the matching
tile among decoys before the countdown runs out.

The package is headless: a UI shell drives ``ColorMatchGame`` and renders the
``RoundState`` snapshots it publishes.

All tunable parameters live in game_config.yaml.
"""
