import json
from io import BytesIO
from xml.sax.saxutils import escape

import qrcode
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from clinic.models.appointment import Appointment
from clinic.models.prescription import Prescription


def appointment_verification_data(appointment: Appointment) -> dict:
    return {
        "appointment_id": appointment.id,
        "patient_id": appointment.patient_id,
        "patient_name": appointment.patient.name,
        "doctor_id": appointment.doctor_id,
        "appointment_time": appointment.appointment_time.isoformat(),
        "status": appointment.status.name,
    }


def appointment_qr_png(appointment: Appointment) -> bytes:
    qr = qrcode.QRCode(version=1, box_size=10, border=5)
    qr.add_data(json.dumps(appointment_verification_data(appointment)))
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffered = BytesIO()
    img.save(buffered, format="PNG")
    return buffered.getvalue()


def prescription_pdf(prescription: Prescription) -> bytes:
    doctor = prescription.doctor
    patient = prescription.patient
    appointment = prescription.appointment

    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=letter)
    styles = getSampleStyleSheet()
    story = []

    # Title
    title_style = ParagraphStyle(
        "CustomTitle",
        parent=styles["Heading1"],
        fontSize=24,
        spaceAfter=30,
    )
    story.append(Paragraph("Medical Prescription", title_style))

    # Doctor Information
    story.append(Paragraph("Doctor Information:", styles["Heading2"]))
    story.append(Paragraph(f"Name: {escape(doctor.name)}", styles["Normal"]))
    story.append(Paragraph(f"Specialty: {escape(doctor.specialty)}", styles["Normal"]))
    story.append(Spacer(1, 20))

    # Patient Information
    story.append(Paragraph("Patient Information:", styles["Heading2"]))
    story.append(Paragraph(f"Name: {escape(patient.name)}", styles["Normal"]))
    story.append(Paragraph(f"Phone: {patient.phone}", styles["Normal"]))
    story.append(Paragraph(f"Appointment: {appointment.appointment_time:%Y-%m-%d %H:%M}", styles["Normal"]))
    story.append(Spacer(1, 20))

    # Medication
    story.append(Paragraph("Medication:", styles["Heading2"]))
    med_table = Table([["Medication", "Dosage"], [prescription.medication, prescription.dosage]])
    med_table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
                ("ALIGN", (0, 0), (-1, -1), "CENTER"),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, 0), 14),
                ("BOTTOMPADDING", (0, 0), (-1, 0), 12),
                ("BACKGROUND", (0, 1), (-1, -1), colors.beige),
                ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
                ("FONTSIZE", (0, 1), (-1, -1), 12),
                ("GRID", (0, 0), (-1, -1), 1, colors.black),
            ]
        )
    )
    story.append(med_table)
    story.append(Spacer(1, 20))

    if prescription.doctor_notes:
        story.append(Paragraph("Notes:", styles["Heading2"]))
        story.append(Paragraph(escape(prescription.doctor_notes), styles["Normal"]))
        story.append(Spacer(1, 20))

    if prescription.created_at is not None:
        story.append(Paragraph(f"Date: {prescription.created_at:%Y-%m-%d %H:%M}", styles["Normal"]))

    doc.build(story)
    return buffer.getvalue()
