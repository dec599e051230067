"""
Domain layer for GradeCore.

Questions, quizzes, assessments, submissions and scoring.
"""
