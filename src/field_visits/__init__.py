"""Field Visits package.

Organized by feature modules (employees, accounts, visits, ...) with a thin
Flask controller layer on top of service/repository layers.
"""
