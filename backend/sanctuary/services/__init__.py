"""
Sanctuary Backend — Services Layer
====================================

Business logic between the routes (HTTP) and the database.

Service Inventory:
    - TokenService:    issue and verify bearer tokens (PyJWT)
    - PasswordService: bcrypt hashing and generated passwords
    - Mailer:          account notification emails (aiosmtplib)
    - MediaService:    audio upload validation, staging and removal
    - UserService:     signup, login, forgot/change password
    - SermonService:   sermon CRUD coupled to audio files
    - EventService:    event CRUD and expiry purge

Each module exposes a ready-made singleton built from `sanctuary.config.settings`;
tests build their own instances with explicit settings.
"""
