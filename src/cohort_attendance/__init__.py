"""Cohort Attendance package.

Feature modules (partitions, students, subjects, attendance, promotion,
notifications) each keep a thin model/repository/service split: services
depend on repository Protocols, MySQL implementations live beside them.
"""
