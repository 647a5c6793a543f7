"""
RBAC (Role-Based Access Control) application.

Provides multi-tenant access control with:
- System roles seeded from an immutable permission catalog
- Tenant-scoped custom roles with name-based inheritance
- Soft-revocable, optionally expiring role assignments
- Cached effective permission resolution
- Best-effort audit events for every role and assignment change
"""
