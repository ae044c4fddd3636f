"""HTML templates for the portal's transactional and alert emails."""

import json
from datetime import date, datetime
from html import escape
from typing import Any, Dict, List, Optional


MESES = [
    "enero", "febrero", "marzo", "abril", "mayo", "junio",
    "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
]

FOOTER = (
    "Este es un mensaje automático generado por el Portal de Colaboradores "
    "de Gestar Salud IPS.<br />No responda a este correo."
)

SEVERITY_COLORS = {"CRITICAL": "#dc2626", "HIGH": "#f59e0b", "MEDIUM": "#3b82f6"}
SEVERITY_EMOJIS = {"CRITICAL": "🚨", "HIGH": "⚠️", "MEDIUM": "⚡"}
CATEGORY_EMOJIS = {
    "API_KEY_FAILURE": "🔑",
    "EMAIL_FAILURE": "📧",
    "SERVICE_UNAVAILABLE": "🌐",
    "STORAGE_FAILURE": "💾",
    "DATABASE_ERROR": "🗄️",
    "AUTHENTICATION_ERROR": "🔐",
    "INTEGRATION_ERROR": "🔌",
    "GEMINI_API_ERROR": "🤖",
    "UNKNOWN": "❓",
}


def _e(value: Any) -> str:
    return escape("" if value is None else str(value))


def _parse(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def format_date(value: Any) -> str:
    """``2024-01-20`` -> ``20/1/2024``; unparseable values are returned as-is."""
    if isinstance(value, str) and "T" not in value:
        # Date-only values must not shift with the timezone
        parsed = _parse(value.split(" ")[0])
    else:
        parsed = _parse(value)
    if parsed is None:
        return _e(value)
    return f"{parsed.day}/{parsed.month}/{parsed.year}"


def format_datetime(value: Any) -> str:
    parsed = _parse(value)
    if parsed is None:
        return _e(value)
    return f"{parsed.day} de {MESES[parsed.month - 1]} de {parsed.year}, {parsed:%H:%M}"


def _header(color: str, title: str, subtitle: str = "") -> str:
    sub = f'<p style="margin: 10px 0 0 0; font-size: 14px;">{subtitle}</p>' if subtitle else ""
    return (
        f'<div style="background-color: {color}; color: white; padding: 20px; text-align: center;">'
        f'<h1 style="margin: 0; font-size: 24px;">{title}</h1>{sub}</div>'
    )


def _section(color: str, border: str, title: str) -> str:
    return (
        f'<h3 style="color: {color}; border-bottom: 2px solid {border}; '
        f'padding-bottom: 8px;">{title}</h3>'
    )


def _items(items: List[tuple]) -> str:
    rows = "".join(
        f"<li><strong>{label}:</strong> {value}</li>" for label, value in items if value is not None
    )
    return f'<ul style="line-height: 1.8;">{rows}</ul>'


def _box(background: str, border: str, title: str, text: str) -> str:
    return (
        f'<div style="background-color: {background}; border-left: 4px solid {border}; '
        f'padding: 15px; margin: 20px 0;"><strong>{title}</strong>'
        f'<p style="margin: 10px 0 0 0;">{text}</p></div>'
    )


def _archivos(archivos: List[Dict[str, Any]], color: str) -> str:
    bloques = []
    for grupo in archivos or []:
        urls = grupo.get("urls") or []
        if not urls:
            continue
        enlaces = "".join(
            f'<li><a href="{_e(url)}" target="_blank">Archivo {idx}</a></li>'
            for idx, url in enumerate(urls, start=1)
        )
        bloques.append(
            f'<h4 style="color: {color}; margin-top: 15px; margin-bottom: 5px;">{_e(grupo.get("categoria"))}</h4>'
            f'<ul style="margin: 0; padding-left: 20px;">{enlaces}</ul>'
        )
    return "".join(bloques)


def _wrap(header: str, body: str, width: int = 600, footer: str = FOOTER) -> str:
    return (
        f'<div style="font-family: Arial, sans-serif; color: #333; max-width: {width}px; margin: 0 auto;">'
        f"{header}"
        f'<div style="padding: 30px; background-color: #f9fafb;">'
        f"{body}"
        f'<hr style="border: none; border-top: 1px solid #e5e7eb; margin: 30px 0;" />'
        f'<p style="font-size: 12px; color: #6b7280; text-align: center; margin: 0;">{footer}</p>'
        f"</div></div>"
    )


def _observaciones(color: str, background: str, text_color: str, title: str, text: Any) -> str:
    return (
        f'<div style="background-color: {background}; border: 3px solid {color}; padding: 20px; '
        f'margin: 20px 0; border-radius: 8px;">'
        f'<h3 style="color: {color}; margin-top: 0; margin-bottom: 10px;">{title}</h3>'
        f'<p style="margin: 0; white-space: pre-wrap; line-height: 1.6; color: {text_color};">{_e(text)}</p>'
        f"</div>"
    )


def _servicio(datos: Dict[str, Any]) -> List[tuple]:
    return [
        ("EPS", _e(datos.get("eps"))),
        ("Régimen", _e(datos.get("regimen"))),
        ("Servicio Prestado", _e(datos.get("servicioPrestado"))),
        ("Fecha de Atención", format_date(datos.get("fechaAtencion"))),
    ]


def radicacion(radicado: str, datos: Dict[str, Any]) -> str:
    color = "#059669"
    onedrive = ""
    if datos.get("onedriveFolderUrl"):
        onedrive = (
            '<div style="background-color: #f0f9ff; border-left: 4px solid #0284c7; padding: 15px; margin: 15px 0;">'
            "<strong>📁 Carpeta OneDrive:</strong> "
            f'<a href="{_e(datos["onedriveFolderUrl"])}" target="_blank" style="color: #0284c7;">'
            "Acceder a carpeta en OneDrive</a></div>"
        )

    body = (
        "<p>Cordial saludo,</p>"
        "<p>Le confirmamos que su radicación ha sido creada exitosamente con el siguiente número:</p>"
        f'<div style="background-color: #d1fae5; border: 2px solid {color}; padding: 20px; text-align: center; '
        f'margin: 20px 0; border-radius: 8px;"><h2 style="color: {color}; margin: 0; font-size: 28px;">{_e(radicado)}</h2>'
        '<p style="color: #047857; margin: 5px 0 0 0; font-size: 14px;">Número de Radicado</p></div>'
        + _section(color, "#d1fae5", "📋 Información del Paciente")
        + _items([("Nombre", _e(datos.get("pacienteNombre"))),
                  ("Identificación", _e(datos.get("pacienteIdentificacion")))])
        + _section(color, "#d1fae5", "🏥 Información del Servicio")
        + _items(_servicio(datos))
        + _section(color, "#d1fae5", "📎 Archivos Adjuntos")
        + _archivos(datos.get("archivos"), color)
        + onedrive
        + _box("#fef3c7", "#f59e0b", "⏳ Próximos Pasos:",
               "Su radicación será revisada por el área de facturación. Recibirá una notificación "
               "cuando cambie el estado de su radicado.")
    )
    return _wrap(_header(color, "✅ Radicación Exitosa"), body)


def rechazo(radicado: str, datos: Dict[str, Any]) -> str:
    color = "#dc2626"
    body = (
        "<p>Cordial saludo,</p>"
        f"<p>Le informamos que su radicado <strong>{_e(radicado)}</strong> ha sido rechazado por el área de facturación.</p>"
        + _observaciones(color, "#fef2f2", "#7f1d1d", "📝 Observaciones de Facturación",
                         datos.get("observacionesFacturacion"))
        + _section(color, "#fecaca", "📋 Información del Paciente")
        + _items([("Tipo de Identificación", _e(datos.get("pacienteTipoId"))),
                  ("Identificación", _e(datos.get("pacienteIdentificacion"))),
                  ("Nombre", _e(datos.get("pacienteNombre")))])
        + _section(color, "#fecaca", "🏥 Información del Servicio")
        + _items(_servicio(datos))
        + _section(color, "#fecaca", "📅 Fechas")
        + _items([("Fecha de Radicación", format_datetime(datos.get("fechaRadicacion"))),
                  ("Fecha de Rechazo", format_datetime(datetime.now()))])
        + _section(color, "#fecaca", "📎 Archivos Radicados")
        + _archivos(datos.get("archivos"), color)
        + _box("#fef3c7", "#f59e0b", "🔄 Próximos Pasos:",
               "Por favor, subsane las observaciones mencionadas y radique nuevamente los soportes "
               "corregidos a través del Portal de Colaboradores.")
    )
    return _wrap(_header(color, "⚠️ Radicado Rechazado"), body)


def devolucion(radicado: str, datos: Dict[str, Any]) -> str:
    color = "#ea580c"
    servicio = _servicio(datos)
    if datos.get("tipoSolicitud"):
        servicio.append(("Tipo Solicitud", _e(datos["tipoSolicitud"])))

    body = (
        "<p>Cordial saludo,</p>"
        f"<p>Le informamos que su radicado <strong>{_e(radicado)}</strong> ha sido devuelto por el área de Gestión Back.</p>"
        + _observaciones(color, "#fff7ed", "#7c2d12", "📝 Observaciones de Devolución",
                         datos.get("observacionesDevolucion"))
        + _section(color, "#fdba74", "📋 Información del Paciente")
        + _items([("Tipo de Identificación", _e(datos.get("pacienteTipoId"))),
                  ("Identificación", _e(datos.get("pacienteIdentificacion"))),
                  ("Nombre", _e(datos.get("pacienteNombre")))])
        + _section(color, "#fdba74", "🏥 Información del Servicio")
        + _items(servicio)
        + _section(color, "#fdba74", "📅 Fechas")
        + _items([("Fecha de Radicación", format_datetime(datos.get("fechaRadicacion"))),
                  ("Fecha de Devolución", format_datetime(datetime.now()))])
        + _section(color, "#fdba74", "📎 Archivos Radicados")
        + _archivos(datos.get("archivos"), color)
        + _box("#fff7ed", "#f97316", "🔄 Próximos Pasos:",
               "Por favor, subsane las observaciones mencionadas y gestione nuevamente el caso o "
               "contacte al área correspondiente.")
    )
    return _wrap(_header(color, "⚠️ Radicado Devuelto"), body)


def no_contactable(radicado: str, datos: Dict[str, Any]) -> str:
    color = "#4b5563"
    body = (
        "<p>Cordial saludo,</p>"
        f"<p>Le informamos que en la gestión del radicado <strong>{_e(radicado)}</strong>, "
        "hemos intentado contactar al paciente sin éxito.</p>"
        f'<div style="background-color: #f3f4f6; border: 3px solid {color}; padding: 20px; margin: 20px 0; border-radius: 8px;">'
        '<h3 style="color: #374151; margin-top: 0; margin-bottom: 10px;">📌 Información del Intento</h3>'
        + _items([("Paciente", _e(datos.get("pacienteNombre"))),
                  ("Identificación", _e(datos.get("pacienteIdentificacion"))),
                  ("Fecha de Gestión", _e(datos.get("fechaGestion")))])
        + "</div>"
        + _box("#fff7ed", "#f97316", "🔄 Acción Requerida:",
               "Le sugerimos <strong>validar los datos de contacto del paciente</strong> (teléfonos, "
               "dirección) y realizar un nuevo radicado con la información actualizada para poder "
               "gestionar su solicitud.")
    )
    return _wrap(_header(color, "📴 Paciente No Contactable"), body)


def devolucion_recobro(consecutivo: str, datos: Dict[str, Any]) -> str:
    color = "#dc2626"
    filas = "".join(
        "<tr>"
        f'<td style="padding: 8px; border-bottom: 1px solid #e5e7eb;">{"⭐ " if cups.get("es_principal") else ""}'
        f'<code style="background-color: #e0f2fe; padding: 2px 6px; border-radius: 4px; color: #0369a1;">{_e(cups.get("cups"))}</code></td>'
        f'<td style="padding: 8px; border-bottom: 1px solid #e5e7eb;">{_e(cups.get("descripcion"))}</td>'
        f'<td style="padding: 8px; border-bottom: 1px solid #e5e7eb; text-align: center;">{_e(cups.get("cantidad"))}</td>'
        "</tr>"
        for cups in datos.get("cupsData") or []
    )
    tabla = (
        '<table style="width: 100%; border-collapse: collapse; margin: 10px 0;">'
        '<thead><tr style="background-color: #fef2f2;">'
        '<th style="padding: 8px; text-align: left; border-bottom: 2px solid #fecaca;">Código</th>'
        '<th style="padding: 8px; text-align: left; border-bottom: 2px solid #fecaca;">Descripción</th>'
        '<th style="padding: 8px; text-align: center; border-bottom: 2px solid #fecaca;">Cant.</th>'
        f"</tr></thead><tbody>{filas}</tbody></table>"
        '<p style="font-size: 12px; color: #6b7280;">⭐ = Procedimiento principal</p>'
    )
    body = (
        "<p>Cordial saludo,</p>"
        f"<p>Le informamos que su solicitud de recobro <strong>{_e(consecutivo)}</strong> ha sido devuelta "
        "por el área de Auditoría.</p>"
        + _observaciones(color, "#fef2f2", "#7f1d1d", "📝 Motivo de Devolución", datos.get("respuestaAuditor"))
        + _section(color, "#fecaca", "📋 Información del Paciente")
        + _items([("Nombre", _e(datos.get("pacienteNombre"))),
                  ("Identificación", _e(datos.get("pacienteIdentificacion")))])
        + _section(color, "#fecaca", "🏥 Procedimientos Solicitados")
        + tabla
        + _box("#fef3c7", "#f59e0b", "🔄 Próximos Pasos:",
               "Por favor, revise las observaciones indicadas y realice los ajustes necesarios. Puede "
               "radicar nuevamente la solicitud de recobro con la información corregida.")
    )
    return _wrap(_header(color, "🔄 Recobro Devuelto"), body)


def fallo_subida(radicado: str, datos: Dict[str, Any]) -> str:
    """Upload failure report, total (radicado deleted) or partial."""
    total = bool(datos.get("falloTotal"))
    color = "#dc2626" if total else "#ea580c"
    titulo = "❌ Radicación Fallida" if total else "⚠️ Carga Incompleta de Archivos"

    if total:
        intro = (
            f"<p>Ninguno de los archivos del radicado <strong>{_e(radicado)}</strong> llegó al servidor.</p>"
        )
        if datos.get("radicadoEliminado"):
            intro += "<p>El radicado fue eliminado. Debe realizar una nueva radicación.</p>"
    else:
        intro = (
            f"<p>El radicado <strong>{_e(radicado)}</strong> fue creado, pero algunos archivos no "
            "llegaron al servidor.</p>"
        )

    fallidos = "".join(
        f'<h4 style="color: {color}; margin-top: 15px; margin-bottom: 5px;">{_e(grupo.get("categoria"))}</h4>'
        '<ul style="margin: 0; padding-left: 20px;">'
        + "".join(f"<li>{_e(nombre)}</li>" for nombre in grupo.get("nombres") or [])
        + "</ul>"
        for grupo in datos.get("archivosFallidos") or []
    )
    detalle = "".join(
        f"<li><strong>{_e(item.get('nombre'))}:</strong> {_e(item.get('razon'))}</li>"
        for item in datos.get("erroresDetalle") or []
    )

    body = (
        "<p>Cordial saludo,</p>"
        + intro
        + _section(color, "#fecaca", "📊 Resumen")
        + _items([("Archivos esperados", _e(datos.get("totalArchivos"))),
                  ("Archivos recibidos", _e(datos.get("archivosExitosos"))),
                  ("Fecha", format_datetime(datos.get("timestamp") or datetime.now()))])
        + _section(color, "#fecaca", "📎 Archivos no recibidos")
        + fallidos
        + (f'<ul style="line-height: 1.8;">{detalle}</ul>' if detalle else "")
        + _box("#fef3c7", "#f59e0b", "🔄 Próximos Pasos:",
               "Verifique su conexión a internet y vuelva a radicar los soportes faltantes a través "
               "del Portal de Colaboradores.")
    )
    return _wrap(_header(color, titulo), body)


def error_critico(error: Dict[str, Any]) -> str:
    """Alert email sent to the technical team."""
    severity = error.get("severity", "CRITICAL")
    category = error.get("category", "UNKNOWN")
    color = SEVERITY_COLORS.get(severity, SEVERITY_COLORS["CRITICAL"])

    resumen = (
        f'<div style="background-color: white; border-left: 5px solid {color}; padding: 20px; margin: 20px 0; border-radius: 4px;">'
        f'<h2 style="color: {color}; margin-top: 0; font-size: 20px;">{CATEGORY_EMOJIS.get(category, "❓")} '
        f'{_e(category.replace("_", " "))}</h2>'
        f'<p style="margin: 5px 0; font-size: 14px; color: #6b7280;"><strong>Severidad:</strong> '
        f'<span style="color: {color}; font-weight: bold;">{_e(severity)}</span></p>'
        f'<p style="margin: 5px 0; font-size: 14px; color: #6b7280;"><strong>Módulo:</strong> {_e(error.get("feature"))}</p>'
        f'<p style="margin: 5px 0; font-size: 14px; color: #6b7280;"><strong>Timestamp:</strong> '
        f'{format_datetime(error.get("timestamp"))}</p></div>'
    )
    mensaje = (
        _section(color, "#e5e7eb", "💬 Mensaje de Error")
        + f'<div style="background-color: #fef2f2; border: 2px solid {color}; padding: 15px; border-radius: 4px; margin: 15px 0;">'
        f'<p style="margin: 0; font-family: \'Courier New\', monospace; color: #7f1d1d; word-wrap: break-word;">'
        f'{_e(error.get("errorMessage"))}</p></div>'
    )

    usuario = ""
    if error.get("userEmail") or error.get("userId"):
        usuario = _section(color, "#e5e7eb", "👤 Usuario Afectado") + _items([
            ("Email", _e(error["userEmail"]) if error.get("userEmail") else None),
            ("ID", _e(error["userId"]) if error.get("userId") else None),
        ])

    metadata = ""
    if error.get("metadata"):
        metadata = _section(color, "#e5e7eb", "📊 Metadata Adicional") + _items([
            (_e(key), _e(json.dumps(value, ensure_ascii=False, default=str)))
            for key, value in error["metadata"].items()
        ])

    stack = ""
    if error.get("errorStack"):
        stack = (
            _section(color, "#e5e7eb", "🔍 Stack Trace")
            + '<pre style="background-color: #1f2937; color: #f9fafb; padding: 15px; border-radius: 4px; '
            f'overflow-x: auto; font-size: 12px; line-height: 1.5;">{_e(error["errorStack"])}</pre>'
        )

    body = (
        resumen + mensaje + usuario + metadata + stack
        + _box("#fef3c7", "#f59e0b", "⚡ Acción Requerida:",
               "Este error requiere atención inmediata. Por favor, revise el sistema y tome las "
               "medidas correctivas necesarias.")
    )
    header = _header(
        color,
        f"{SEVERITY_EMOJIS.get(severity, '🚨')} Error Crítico Detectado",
        "Portal de Colaboradores - Gestar Salud IPS"
    )
    footer = (
        "Este es un mensaje automático del Sistema de Monitoreo de Errores Críticos.<br />"
        "Portal de Colaboradores - Gestar Salud IPS"
    )
    return _wrap(header, body, width=700, footer=footer)


def asunto_error_critico(error: Dict[str, Any]) -> str:
    severity = error.get("severity", "CRITICAL")
    category = error.get("category", "UNKNOWN")
    return (
        f"{SEVERITY_EMOJIS.get(severity, '🚨')} Error {severity} - "
        f"{CATEGORY_EMOJIS.get(category, '❓')} {category} - {error.get('feature')}"
    )


# type -> (subject prefix, template)
EMAIL_TYPES = {
    "radicacion": ("Confirmación de Radicación - {radicado}", radicacion),
    "rechazo": ("Rechazo de Radicado - {radicado}", rechazo),
    "devolucion": ("Devolución de Caso - {radicado}", devolucion),
    "no_contactable": ("Paciente No Contactable - Radicado {radicado}", no_contactable),
    "devolucion_recobro": ("Recobro Devuelto - {radicado}", devolucion_recobro),
    "fallo_subida": ("Fallo en Carga de Archivos - {radicado}", fallo_subida),
}
