"""Shift staffing & timesheet approval engine.

Feature modules (roles, shifts, assignments, permissions, timesheets, ...) each hold
a domain model, a repository protocol with its MySQL implementation, a service and a
thin Flask controller. ``engine.StaffingEngine`` is the facade the rest of the
system talks to.
"""
