# Services package init
"""
BookSwap Backend — Services Layer
==================================

What:  Business logic between the routes (HTTP) and the database.
How:   Stateless classes with a module-level singleton each; methods take
       the request's AsyncSession and raise BookSwap exceptions.

Service Inventory:
    - security:             bcrypt hashing, credential rules, purpose-bound JWTs
    - MailService:          SMTP delivery (aiosmtplib + tenacity) and templates
    - UserService:          registration, login, verification, password reset, profiles
    - PublicationService:   listings, genres, ownership rules, recommendations
    - InteractionService:   interest upsert, owner notification cooldown, completion
    - ReviewService:        reviews and average rating
"""
