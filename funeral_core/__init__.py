"""Funeral core: versioned policies, invitations, templates and ERP orchestration."""
