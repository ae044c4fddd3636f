"""Portal de Colaboradores Gestar Salud IPS - API.

Backend del portal de colaboradores de Gestar Salud IPS: autenticación,
radicación de soportes de facturación y casos back-office, OCR de
documentos, búsqueda de códigos médicos y notificaciones.

Características principales:
- Autenticación y usuarios sobre Supabase Auth
- Radicación con carga firmada a Supabase Storage y copia en OneDrive
- OCR con Google Document AI y Gemini
- Notificaciones por Gmail, LabsMobile (SMS) y Microsoft Teams
"""

__version__ = "1.0.0"
__author__ = "Gestar Salud IPS - Equipo de Tecnología"
__email__ = "info@gestarsaludips.com"

# Configuración para documentación OpenAPI
TITLE = "Portal de Colaboradores Gestar Salud IPS"
DESCRIPTION = """
API del portal de colaboradores de Gestar Salud IPS.

## Características

* **Autenticación**: Inicio de sesión por identificación, bloqueo por intentos fallidos e inactividad
* **Radicación de soportes**: Carga en dos fases con URLs firmadas y verificación en Storage
* **Casos back-office**: Radicación, gestión de estados y notificación al paciente
* **OCR**: Google Document AI con respaldo en Gemini
* **Búsqueda**: Afiliados, CIE-10, CUPS y medicamentos
* **Notificaciones**: Correo (Gmail), SMS (LabsMobile) y Microsoft Teams
"""

VERSION = "1.0.0"
CONTACT = {
    "name": "Gestar Salud IPS - Equipo de Tecnología",
    "email": "info@gestarsaludips.com",
}

TAGS_METADATA = [
    {
        "name": "auth",
        "description": "Inicio y cierre de sesión, cambio de contraseña y control de inactividad",
    },
    {
        "name": "users",
        "description": "Creación de usuarios del portal y restablecimiento de contraseñas",
    },
    {
        "name": "afiliados",
        "description": "Consulta de afiliados por documento o nombre",
    },
    {
        "name": "lookup",
        "description": "Búsqueda de códigos CIE-10, CUPS y medicamentos",
    },
    {
        "name": "soportes",
        "description": "Radicación de soportes de facturación en dos fases y gestión de estados",
    },
    {
        "name": "casos",
        "description": "Radicación y gestión de casos back-office",
    },
    {
        "name": "documents",
        "description": "OCR de documentos PDF y generación de embeddings",
    },
    {
        "name": "onedrive",
        "description": "Sincronización de radicados con carpetas de OneDrive",
    },
    {
        "name": "notifications",
        "description": "Envío de correos, SMS, tarjetas de Teams y alertas de errores críticos",
    },
    {
        "name": "health",
        "description": "Endpoints para verificar el estado de la aplicación",
    },
]
