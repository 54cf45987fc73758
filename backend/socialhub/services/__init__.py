"""
SocialHub Backend — Services Layer
====================================

What:  Business logic between the routes (HTTP) and the database.

Service Inventory:
    - CounterMaintainer: atomic membership toggles and counter deltas
    - NotificationEmitter / NotificationService: writes and reads notifications
    - MirrorSink + TabularStore: best-effort spreadsheet mirror
    - DriveService: per-user Google Drive media storage
    - UserService, PostService, CommentService: request-level workflows
    - security: password hashing and bearer tokens

Services receive the request's AsyncSession as their first argument; the
mirror and drive clients are passed in by the routes, which get them from
app.state through dependencies.
"""
