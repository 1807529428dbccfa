from checklist_engine.models.audit_event import AuditEvent
from checklist_engine.models.template_node import TemplateNodeRecord

__all__ = ["AuditEvent", "TemplateNodeRecord"]
