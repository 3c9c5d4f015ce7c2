from nexusjob.models.application import Application, ApplicationStatus
from nexusjob.models.chat import Chat
from nexusjob.models.job import Job, JobType
from nexusjob.models.message import Message
from nexusjob.models.user import User, UserRole

__all__ = ["User", "UserRole", "Job", "JobType", "Application", "ApplicationStatus", "Chat", "Message"]
