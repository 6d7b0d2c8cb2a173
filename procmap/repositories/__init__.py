"""
repositories/ - Data Access Layer
==================================
Encapsulates the stored-procedure calls made for entities.
Repositories receive raw rows from the session and hand them back untouched;
mapping to entities happens in the services.
"""
