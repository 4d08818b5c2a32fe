"""Game domain services: scoring, roulette, control state machine, timers
and the presenter/participant controllers.

This package contains the game mechanics imported by HTTP routes and
socket handlers, keeping transport concerns separated from the core.
"""
