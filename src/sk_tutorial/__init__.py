"""SK Tutorial administration service.

Feature modules (students, attendance, fees, ...) each carry a thin Flask
controller over service and repository layers backed by MongoDB.
"""
