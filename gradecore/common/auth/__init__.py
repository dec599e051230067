"""
Acting identity supplied by the authorization collaborator.
"""

from gradecore.common.auth.user import Actor, UserRole

__all__ = ['Actor', 'UserRole']
