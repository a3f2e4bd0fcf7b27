# Shared Common Library for flightdesk
# Authentication, permissions, pagination, middleware and the API error
# envelope used by every app in the project.

__version__ = "1.0.0"
