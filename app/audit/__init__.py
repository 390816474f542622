# Audit module - append-only event trail for bookings
