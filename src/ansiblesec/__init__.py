"""ansiblesec — secret detection and policy enforcement for Ansible playbooks."""

__version__ = "0.1.0"
