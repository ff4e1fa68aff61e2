# Services package init
"""
Riddle Server — Services Layer
================================

What:  Business logic layer sitting between routes (HTTP) and database (persistence).
How:   Services accept an AsyncSession plus plain arguments, apply the game
       rules, and return Pydantic response models or raise domain errors.

Service Inventory:
    - CredentialHasher: bcrypt hashing and verification (off the event loop)
    - TokenService: issues and verifies HS256 session tokens
    - AuthService: registration, login, user resolution (returns AuthOutcome)
    - PlayerService: player records, score submission, leaderboard, stats
    - RiddleService: riddle CRUD, random selection, bulk loading

Each module exposes a ready-to-use singleton (e.g. `auth_service`).
"""
