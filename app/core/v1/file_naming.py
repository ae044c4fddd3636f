"""File and folder naming rules for billing supports."""

import re
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import unquote, urlparse


NIT = "900842629"
DEFAULT_RADICADO = "FACT0000"
DEFAULT_EXTENSION = "pdf"
MAX_ID_NUMBER = 1199999999

CATEGORIAS = [
    "validacion_derechos",
    "autorizacion",
    "soporte_clinico",
    "comprobante_recibo",
    "orden_medica",
    "descripcion_quirurgica",
    "registro_anestesia",
    "hoja_medicamentos",
    "notas_enfermeria",
]

CATEGORIA_LABELS = {
    "validacion_derechos": "Validación de Derechos",
    "autorizacion": "Autorización",
    "soporte_clinico": "Soporte Clínico",
    "comprobante_recibo": "Comprobante de Recibo",
    "orden_medica": "Orden Médica",
    "descripcion_quirurgica": "Descripción Quirúrgica",
    "registro_anestesia": "Registro de Anestesia",
    "hoja_medicamentos": "Hoja de Medicamentos",
    "notas_enfermeria": "Notas de Enfermería",
}

# Legacy column still present on older rows
LEGACY_URL_COLUMNS = ["urls_recibo_caja"]

FIXED_PREFIXES = {
    "comprobante_recibo": "CRC",
    "descripcion_quirurgica": "DQX",
    "registro_anestesia": "RAN",
    "hoja_medicamentos": "HAM",
    "notas_enfermeria": "HEV",
}

EPS_SHORT = {
    "NUEVA EPS": "NEPS",
    "SALUD TOTAL": "STOT",
    "MUTUAL SER": "MSER",
    "FAMILIAR": "FAMI",
}

REGIMEN_SHORT = {
    "CONTRIBUTIVO": "CON",
    "SUBSIDIADO": "SUB",
}

SERVICIO_SHORT = {
    "Laboratorio": "Lab",
    "Imágenes": "Img",
    "Consulta Especializada": "ConsultaEsp",
    "Procedimiento": "Proc",
    "Cirugía": "Cir",
    "Hospitalización": "Hosp",
    "Urgencias": "Urg",
    "Terapias": "Ter",
}

ID_TYPES = "CC|TI|CE|CN|SC|PE|PT|RC|ME|AS"
ID_PATTERN = re.compile(rf"(?:^|[^a-zA-Z])({ID_TYPES})\s*(\d{{1,13}})(?:[^0-9]|$)", re.IGNORECASE)
ID_TYPE_PREFIX = re.compile(rf"^({ID_TYPES})", re.IGNORECASE)


def columna_categoria(categoria: str) -> str:
    """DB column holding the signed URLs of a category."""
    return f"urls_{categoria}"


def url_columns() -> List[str]:
    return [columna_categoria(categoria) for categoria in CATEGORIAS] + LEGACY_URL_COLUMNS


def obtener_prefijo(eps: str, servicio: str, categoria: str) -> str:
    """Document-type prefix required by each EPS for a category."""
    if categoria in FIXED_PREFIXES:
        return FIXED_PREFIXES[categoria]

    if categoria == "autorizacion":
        return "OPF" if eps == "SALUD TOTAL" else "PDE"

    if categoria == "validacion_derechos":
        return "PDE2" if eps == "NUEVA EPS" else "OPF"

    if categoria == "orden_medica":
        return "PDE2" if eps == "FAMILIAR DE COLOMBIA" else "PDX"

    if categoria == "soporte_clinico":
        if eps in ("SALUD TOTAL", "NUEVA EPS"):
            return "PDX" if servicio in ("Imágenes Diagnósticas", "Laboratorio clínico") else "HEV"
        if eps == "FAMILIAR DE COLOMBIA":
            return "PDX" if servicio == "Imágenes Diagnósticas" else "HEV"

    return "DOC"


def extraer_identificacion(nombre_archivo: str) -> Optional[str]:
    """Find a patient ID such as ``CC123456`` inside a file name.

    >>> extraer_identificacion("Soporte_TI987654321_Feb.pdf")
    'TI987654321'
    """
    match = ID_PATTERN.search(nombre_archivo or "")
    if not match:
        return None

    tipo, numero = match.group(1).upper(), match.group(2)
    if int(numero) > MAX_ID_NUMBER:
        return None
    return f"{tipo}{numero}"


def nombre_desde_url(url: str) -> str:
    """Last path segment of a (signed) URL, percent-decoded."""
    try:
        path = unquote(urlparse(url).path)
    except ValueError:
        return ""
    return path.rstrip("/").split("/")[-1] if path else ""


def extraer_identificaciones(urls: Iterable[str]) -> List[str]:
    """Unique IDs found in the file names of the URLs, with and without type."""
    identificaciones = []
    for url in urls:
        identificacion = extraer_identificacion(nombre_desde_url(url))
        if not identificacion:
            continue
        for value in (identificacion, ID_TYPE_PREFIX.sub("", identificacion)):
            if value and value not in identificaciones:
                identificaciones.append(value)
    return identificaciones


def extension_de(nombre: str) -> str:
    if "." not in (nombre or ""):
        return DEFAULT_EXTENSION
    return nombre.rsplit(".", 1)[1].lower() or DEFAULT_EXTENSION


def generar_ruta_archivo(
    nombre_original: str,
    categoria: str,
    radicado: str,
    eps: str,
    servicio: str,
    contadores: Dict[str, int]
) -> Tuple[str, str, Optional[str]]:
    """Build the storage name of an uploaded support.

    Files sharing a base name get a consecutive suffix: ``base.pdf``,
    ``base_2.pdf``, ``base_3.pdf``. ``contadores`` is updated in place.

    Returns:
        Tuple of (file name, storage path, extracted identification).
    """
    identificacion = extraer_identificacion(nombre_original)
    prefijo = obtener_prefijo(eps, servicio, categoria)

    if identificacion:
        base = f"{prefijo}_{NIT}_{identificacion}"
    else:
        base = f"{prefijo}_{radicado}_{categoria}"

    count = contadores.get(base, 0)
    contadores[base] = count + 1

    extension = extension_de(nombre_original)
    nombre = f"{base}.{extension}" if count == 0 else f"{base}_{count + 1}.{extension}"
    return nombre, f"{radicado}/{nombre}", identificacion


def _mes_dia(fecha_atencion) -> str:
    if isinstance(fecha_atencion, date):
        fecha = fecha_atencion
    else:
        try:
            fecha = date.fromisoformat(str(fecha_atencion or "").split("T")[0])
        except ValueError:
            fecha = date.today()
    return f"{fecha.month:02d}{fecha.day:02d}"


def nombre_carpeta(soporte: Dict) -> str:
    """OneDrive folder name, e.g. ``FACT0001_0120_NEPS_CON_ConsultaEsp``."""
    radicado = soporte.get("radicado") or DEFAULT_RADICADO
    eps = EPS_SHORT.get(soporte.get("eps"), "EPS")
    regimen = REGIMEN_SHORT.get(soporte.get("regimen"), "REG")
    servicio = SERVICIO_SHORT.get(soporte.get("servicio_prestado"), "Serv")
    return f"{radicado}_{_mes_dia(soporte.get('fecha_atencion'))}_{eps}_{regimen}_{servicio}"
