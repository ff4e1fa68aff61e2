# Routes package init
"""
Riddle Server — API Routes Package
===================================

What:  HTTP route handlers that accept requests and return responses.

Route Inventory:
    - root.py:     GET  /                          (welcome message)
    - health.py:   GET  /health                    (liveness + DB probe)
    - auth.py:     POST /auth/register, POST /auth/login, GET /auth/me
    - players.py:  /players, /players/leaderboard, /players/submit-score,
                   /players/{username}, /players/{username}/stats
    - riddles.py:  /riddles, /riddles/random, /riddles/bulk, /riddles/{id}

Design Principle:
    Routes are THIN: extract input, attach access-control dependencies,
    call a service, pick the status code. Business rules live in services.
"""
