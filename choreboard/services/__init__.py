"""Business logic for ChoreBoard.

Routes should delegate to these services and handle HTTP responses.
"""
