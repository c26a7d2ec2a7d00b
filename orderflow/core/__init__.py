"""Workflow decorator, registry and engine exceptions."""
