# Zendesk integration module
from kbsync.integrations.zendesk.client import ZendeskTicketAdapter

__all__ = ["ZendeskTicketAdapter"]
