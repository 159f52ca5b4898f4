"""HR attendance package.

Organized by feature modules (attendance, employees, requests, reports) with a
thin Flask controller layer over service and repository layers.
"""
