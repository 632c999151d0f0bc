from tortoise import fields, models
import uuid


# -------- Users --------
class User(models.Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    username = fields.CharField(max_length=50, unique=True, index=True)
    email = fields.CharField(max_length=100, unique=True, index=True)
    disabled = fields.BooleanField(default=False)
    is_admin = fields.BooleanField(default=False)

    class Meta:
        table = "users"

    def __str__(self) -> str:
        return f"{self.username} ({self.email})"


# -------- Households --------
class Household(models.Model):
    id = fields.IntField(pk=True)
    owner = fields.ForeignKeyField("models.User", related_name="households", on_delete=fields.CASCADE, index=True)
    name = fields.CharField(max_length=200)
    city = fields.CharField(max_length=100)
    occupants = fields.IntField(default=1)
    monthly_kwh_target = fields.FloatField(default=0)
    monthly_cost_target = fields.FloatField(default=0)
    currency = fields.CharField(max_length=8, default="LKR")
    created_at = fields.DatetimeField(auto_now_add=True, index=True)
    updated_at = fields.DatetimeField(auto_now=True, index=True)

    usage_entries: fields.ReverseRelation["UsageEntry"]
    bills: fields.ReverseRelation["Bill"]

    class Meta:
        table = "households"

    def __str__(self) -> str:
        return self.name or f"Household#{self.id}"


# ========================
# Tariff (single live document, keyed by name)
# ========================
class Tariff(models.Model):
    id = fields.IntField(pk=True)
    name = fields.CharField(max_length=64, unique=True, index=True, default="domestic")
    # slab lists: [{"up_to": float | null, "rate": float, "fixed_charge": float}, ...]
    # up_to = null marks the open-ended last slab
    tariff_low = fields.JSONField(default=list)
    tariff_high = fields.JSONField(default=list)
    sscl_rate = fields.FloatField(default=0.0)
    created_at = fields.DatetimeField(auto_now_add=True, index=True)
    updated_at = fields.DatetimeField(auto_now=True, index=True)

    class Meta:
        table = "tariffs"

    def __str__(self) -> str:
        return self.name


# ========================
# Usage
# ========================
class UsageEntry(models.Model):
    id = fields.IntField(pk=True)
    household = fields.ForeignKeyField("models.Household", related_name="usage_entries", on_delete=fields.CASCADE, index=True)
    date = fields.DateField(index=True)
    entry_type = fields.CharField(max_length=8, default="manual")  # 'manual' | 'meter'
    units_used = fields.FloatField()
    previous_reading = fields.FloatField(null=True)
    current_reading = fields.FloatField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True, index=True)
    updated_at = fields.DatetimeField(auto_now=True, index=True)

    class Meta:
        table = "usage_entries"
        unique_together = ("household", "date")


# ========================
# Bills
# ========================
class Bill(models.Model):
    id = fields.IntField(pk=True)
    household = fields.ForeignKeyField("models.Household", related_name="bills", on_delete=fields.CASCADE, index=True)
    month = fields.SmallIntField(index=True)  # 1..12
    year = fields.SmallIntField(index=True)   # 2000..2100

    previous_reading = fields.FloatField(null=True)
    current_reading = fields.FloatField(null=True)

    total_units = fields.FloatField()
    energy_charge = fields.FloatField()
    fixed_charge = fields.FloatField()
    sub_total = fields.FloatField()
    sscl = fields.FloatField()
    total_cost = fields.FloatField()
    # [{"range": "1–30 kWh", "units": 30, "rate": 4.5, "cost": 135.0}, ...]
    breakdown = fields.JSONField(default=list)

    status = fields.CharField(max_length=8, default="unpaid", index=True)  # 'unpaid' | 'paid'
    due_date = fields.DateField()
    paid_at = fields.DatetimeField(null=True)

    created_at = fields.DatetimeField(auto_now_add=True, index=True)
    updated_at = fields.DatetimeField(auto_now=True, index=True)

    class Meta:
        table = "bills"
        unique_together = ("household", "month", "year")

    def __str__(self) -> str:
        return f"Bill({self.household_id} {self.year}-{self.month:02d})"
