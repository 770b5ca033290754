"""
Application services that sit on top of the auth core.

- audit: family audit trail
- onboarding: system bootstrap and family registration
- container: wiring of every service for the API
"""
