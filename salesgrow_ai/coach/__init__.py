"""
Sales roleplay coach.

Multi-turn practice sessions in which the model plays a client, followed
by a scored feedback report.
"""
