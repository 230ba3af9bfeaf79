"""EasyWeb helpdesk back end: Users and Tickets services."""
