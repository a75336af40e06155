"""
Career Plan Tracker
Gamified career preparation plans for students.

Architecture:
- Relational DB (PostgreSQL): students, plans, tasks, rewards (source of truth)
- MongoDB: AI-generated plan drafts
- DeepSeek AI: plan drafting only (XP, streaks and rewards are computed here)
"""

__version__ = "1.0.0"
