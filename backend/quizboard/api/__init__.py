"""HTTP API for the live leaderboard."""
