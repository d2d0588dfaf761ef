from django.db import models


class PricingType(models.TextChoices):
    """
    How a catalog service is charged
    """

    HOURLY = "hourly", "Hourly"
    FIXED = "fixed", "Fixed Price"


class SkillLevel(models.TextChoices):
    JUNIOR = "junior", "Junior"
    SENIOR = "senior", "Senior"
    SPECIALIST = "specialist", "Specialist"


class PartUnit(models.TextChoices):
    PIECE = "piece", "Piece"
    LITER = "liter", "Liter"
    METER = "meter", "Meter"
    KILOGRAM = "kilogram", "Kilogram"
    SET = "set", "Set"


class StockTransactionType(models.TextChoices):
    """
    Reason a part's stock level moved
    """

    PURCHASE = "purchase", "Purchase"
    USAGE = "usage", "Usage"
    ADJUSTMENT = "adjustment", "Adjustment"
    RETURN = "return", "Return"
