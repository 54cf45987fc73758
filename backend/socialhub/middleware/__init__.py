"""
SocialHub Backend — Middleware Package
========================================

Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

Request ID runs first so the access log line and any error body of the
request carry the same id.
"""
