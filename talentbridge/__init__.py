"""
TalentBridge
A multi-tenant recruiting platform for employers, university career centers and students.

Architecture:
- PostgreSQL: Structured data (organizations, jobs, applications, inbox, events, activity)
- MongoDB: Documents (resume text, parsed resumes, voice answer audio via GridFS)
- OpenAI-compatible AI: Job description drafting and application summaries
"""

__version__ = "1.0.0"
