"""taskdesk — project and task management backend.

Users sign up and sign in for bearer tokens; admins create projects and
assign tasks; everyone else sees only the projects they own or belong to
and the tasks assigned to them or filed under those projects.
"""

__version__ = "0.1.0"
