"""
Project services.

    membership   the membership table and its manager invariant
    lifecycle    create / update / delete and member changes, with notifications
    metrics      per-project progress figures
    dashboard    per-user and admin aggregates
    reports      CSV reports for the report job

Import from the submodules directly; the lifecycle module depends on the
notification jobs, which in turn use the report builders.
"""
