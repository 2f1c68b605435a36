"""Attendance Sync package.

One device tracks one user's attendance day (clock in/out, breaks,
overtime, client visits) and keeps it in sync with a shared store that
other devices watch. Feature modules (session, status, accounting, sync,
roster, history) sit behind a thin Flask controller layer.
"""
