"""Shared FastAPI dependencies."""

from dataclasses import dataclass

from fastapi import Request

from wabridge.infra.settings import BotSettings
from wabridge.services.backend import BackendClient
from wabridge.services.message_handler import MessageHandler
from wabridge.services.scheduler import ReminderScheduler
from wabridge.services.webhook_forwarder import WebhookForwarder
from wabridge.whatsapp.lifecycle import LifecycleManager
from wabridge.whatsapp.outbound import SendGateway


@dataclass
class BotServices:
    """Everything the HTTP handlers need, built once per app."""

    settings: BotSettings
    manager: LifecycleManager
    gateway: SendGateway
    backend: BackendClient
    forwarder: WebhookForwarder
    handler: MessageHandler
    scheduler: ReminderScheduler


def get_services(request: Request) -> BotServices:
    return request.app.state.services
