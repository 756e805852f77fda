"""School Admin package.

Organized by feature modules (admissions, students, attendance, review, ...)
with a thin Flask controller layer and service/repository layers below it.
"""
