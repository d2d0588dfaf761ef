from django.db import models


class JobStatus(models.TextChoices):
    """
    Where a repair job is in the shop
    """

    NOT_STARTED = "not_started", "Not Started"
    IN_PROGRESS = "in_progress", "In Progress"
    WAITING_FOR_PARTS = "waiting_for_parts", "Waiting for Parts"
    READY_FOR_PICKUP = "ready_for_pickup", "Ready for Pickup"
    COMPLETED = "completed", "Completed"


class JobPriority(models.TextChoices):
    LOW = "low", "Low"
    NORMAL = "normal", "Normal"
    URGENT = "urgent", "Urgent"


class ServiceType(models.TextChoices):
    REPAIR = "repair", "Repair"
    MAINTENANCE = "maintenance", "Maintenance"
    INSPECTION = "inspection", "Inspection"
    DIAGNOSTIC = "diagnostic", "Diagnostic"


class JobHealth(models.TextChoices):
    """
    Advisory risk level derived from a job's age and inactivity
    """

    HEALTHY = "healthy", "Healthy"
    WARNING = "warning", "Needs Attention"
    CRITICAL = "critical", "Critical"
    OVERDUE = "overdue", "Overdue"


class StockAvailability(models.TextChoices):
    """
    Stock state of a replacement called for by a diagnostic finding
    """

    IN_STOCK = "in_stock", "In Stock"
    NEEDS_ORDER = "needs_order", "Needs Order"
    UNKNOWN = "unknown", "Unknown"


class UserRole(models.TextChoices):
    ADMIN = "admin", "Admin"
    MANAGER = "manager", "Manager"
    OFFICE_STAFF = "office_staff", "Office Staff"
    MECHANIC = "mechanic", "Mechanic"


class PartsOrderStatus(models.TextChoices):
    ORDER = "order", "Needs Ordering"
    IN_STOCK = "in_stock", "In Stock"


class PartCategory(models.TextChoices):
    """
    Part categories a mechanic can flag when a job stalls on parts
    """

    BRAKES = "brakes", "Brakes"
    FLUIDS = "fluids", "Fluids"
    ELECTRICAL = "electrical", "Electrical"
    AIR_SYSTEM = "air_system", "Air System"
    GAUGES = "gauges", "Gauges"
    TRANSMISSION = "transmission", "Transmission"
    SUSPENSION = "suspension", "Suspension"
    BODY = "body", "Body"
    LIGHTING = "lighting", "Lighting"
    COOLING = "cooling", "Cooling"
    ENGINE = "engine", "Engine"
    DRIVETRAIN = "drivetrain", "Drivetrain"
    AUDIO = "audio", "Audio"
    WHEELS = "wheels", "Wheels"
    ACCESSORIES = "accessories", "Accessories"


class JobEventType(models.TextChoices):
    JOB_CREATED = "job_created", "Created"
    STATUS_CHANGED = "status_changed", "Status Changed"
    ASSIGNED = "assigned", "Assigned"
    PARTS_UPDATED = "parts_updated", "Parts Updated"
    WORK_ORDER_SAVED = "work_order_saved", "Work Order Saved"
    COMPLETED = "completed", "Completed"
    JOB_UPDATED = "job_updated", "Updated"
