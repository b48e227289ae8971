"""
Services layer - business logic for the report workflow.

DESIGN PRINCIPLE:
- Services contain business logic, NOT routes
- status_workflow decides transitions, report_store persists them atomically
- authorization decides who may perform each workflow action
- Notifications are best-effort and never fail a workflow operation
"""
