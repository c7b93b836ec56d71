"""Domain action gateways over the relational store."""

from gateways.alerts import AlertRecord, AlertsGateway, DueAlert
from gateways.images import ImageOptions, ImageRecord, ImagesGateway
from gateways.notes import NoteRecord, NotesGateway
from gateways.tasks import TaskRecord, TasksGateway

__all__ = [
    "AlertRecord",
    "AlertsGateway",
    "DueAlert",
    "ImageOptions",
    "ImageRecord",
    "ImagesGateway",
    "NoteRecord",
    "NotesGateway",
    "TaskRecord",
    "TasksGateway",
]
