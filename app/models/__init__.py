from app.models.appointment import Appointment
