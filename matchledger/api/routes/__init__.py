"""
API routes, all mounted under ``/api/v1``:

- auth: wallet sign-in and the session cookie
- users: profiles and display names
- matches: recording, winners and deletion
- stats: per-player stats and the leaderboard
- admin: tombstone reset and backend status
"""
