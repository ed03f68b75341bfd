"""
StudyAI pipeline - webhook-mediated AI processing for a study assistant
"""
__version__ = "1.0.0"
