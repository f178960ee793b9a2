"""Business constants for the barbershop agenda core."""

# Offered services and their default prices (R$)
SERVICE_PRICES = {
    "Corte e Barba": 45.00,
    "Só Corte": 35.00,
    "Só Barba": 25.00,
}

# Service types, in display order
SERVICE_TYPES = list(SERVICE_PRICES)

# Appointment statuses
APPOINTMENT_STATUS_SCHEDULED = "scheduled"
APPOINTMENT_STATUS_COMPLETED = "completed"
APPOINTMENT_STATUS_CANCELED = "canceled"

APPOINTMENT_STATUSES = (
    APPOINTMENT_STATUS_SCHEDULED,
    APPOINTMENT_STATUS_COMPLETED,
    APPOINTMENT_STATUS_CANCELED,
)

# Allowed status transitions; statuses missing as keys are terminal
APPOINTMENT_TRANSITIONS = {
    APPOINTMENT_STATUS_SCHEDULED: (
        APPOINTMENT_STATUS_COMPLETED,
        APPOINTMENT_STATUS_CANCELED,
    ),
}

# Client validation rules
CLIENT_NAME_MIN_LENGTH = 2
CLIENT_PHONE_MIN_DIGITS = 10

# Persistent collection names
CLIENTS_COLLECTION = "clients"
APPOINTMENTS_COLLECTION = "appointments"
SETTINGS_NAMESPACE = "settings"

# Message template tokens
TOKEN_NAME = "{nome}"
TOKEN_DATE = "{data}"
TOKEN_TIME = "{hora}"
TOKEN_SERVICE = "{servico}"
TOKEN_VALUE = "{valor}"

# Display formats used when rendering messages
DATE_FORMAT = "%d/%m/%Y"
TIME_FORMAT = "%H:%M"
