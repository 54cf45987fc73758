"""
SocialHub Backend — API Routes Package
========================================

Route Inventory (all under /api):
    - auth.py:           users/register, users/login, auth/verify
    - users.py:          profiles, follow toggle, profile update, user posts
    - posts.py:          create, feed, detail, like, save, archive
    - comments.py:       add, list, like
    - notifications.py:  list, mark read, mark all read, delete
    - google.py:         Google Drive OAuth connection
    - health.py:         service health

Routes stay thin: parse the request, call a service, return its response
model. Errors are raised as SocialHubError subclasses and turned into JSON
by the handlers in main.py.
"""
