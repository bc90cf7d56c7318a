"""
Constantes del sincronizador Salsify.
Define metodos de mapeo, tipos de datos remotos, tipos de campo destino
y los nombres reservados que usa el motor.
"""
from enum import Enum


class MappingMethod(str, Enum):
    """Origen de un mapeo de campo."""
    MANUAL = "manual"
    DYNAMIC = "dynamic"


class ImportMethod(str, Enum):
    """Estrategia de importacion configurada."""
    MANUAL = "manual"
    DYNAMIC = "dynamic"


class RemoteDataType(str, Enum):
    """Tipos de dato que declara Salsify para sus atributos."""
    STRING = "string"
    NUMBER = "number"
    ENUMERATED = "enumerated"
    DATE = "date"
    BOOLEAN = "boolean"
    RICH_TEXT = "rich_text"
    HTML = "html"
    LINK = "link"
    DIGITAL_ASSET = "digital_asset"


class FieldKind(str, Enum):
    """Tipos de campo soportados por el almacen destino."""
    STRING = "string"
    STRING_LONG = "string_long"
    TEXT_LONG = "text_long"
    LIST_STRING = "list_string"
    DATETIME = "datetime"
    BOOLEAN = "boolean"
    LINK = "link"
    INTEGER = "integer"
    DECIMAL = "decimal"
    ENTITY_REFERENCE = "entity_reference"


class RunStatus(str, Enum):
    """Estado del resultado de una corrida."""
    STATUS = "status"
    ERROR = "error"


# Prefijos de nombres de campo administrados por el motor
RESERVED_FIELD_PREFIX = "salsify_"
CUSTOM_FIELD_PREFIX = "salsifysync_"
ENGINE_FIELD_PREFIX = "salsify"

# Largo maximo de un nombre de maquina
MACHINE_NAME_MAX_LENGTH = 32

# Campos reservados del registro destino
SYNC_ID_FIELD = "salsify_salsifyid"
HIGH_WATER_MARK_FIELD = "salsify_updated"
SERIALIZED_DATA_FIELD = "salsifysync_data"

# Campo de seguimiento en terminos de taxonomia y media
TRACKING_ID_FIELD = "salsify_id"

# Claves del feed de Salsify
SALSIFY_ID = "salsify:id"
SALSIFY_SYSTEM_ID = "salsify:system_id"
SALSIFY_NAME = "salsify:name"
SALSIFY_DATA_TYPE = "salsify:data_type"
SALSIFY_CREATED_AT = "salsify:created_at"
SALSIFY_UPDATED_AT = "salsify:updated_at"
SALSIFY_ATTRIBUTE_ID = "salsify:attribute_id"
SALSIFY_ENTITY_TYPES = "salsify:entity_types"
SALSIFY_URL = "salsify:url"
SALSIFY_ASSET_RESOURCE_TYPE = "salsify:asset_resource_type"
SALSIFY_FORMAT = "salsify:format"

# Campo sintetico que representa la identidad de sincronizacion
SYNC_ID_REMOTE_FIELD = {
    "id": SALSIFY_ID,
    "system_id": "salsify:system_id",
    "name": "Salsify Sync ID",
    "data_type": RemoteDataType.STRING.value,
}

# Contenedores del feed exportado
FEED_PRODUCTS = "products"
FEED_ATTRIBUTES = "attributes"
FEED_ATTRIBUTE_VALUES = "attribute_values"
FEED_DIGITAL_ASSETS = "digital_assets"

# Opciones de tipo de entidad destino (alterables via hook)
DEFAULT_ENTITY_TYPE_OPTIONS = {
    "node": "Node",
    "taxonomy_term": "Taxonomy Term",
}

# Displays donde se adjuntan los campos personalizados
VIEW_DISPLAY_MODES = ("default", "teaser")
FORM_DISPLAY_MODES = ("default",)

# Mensajes de resultado de corrida
MSG_IMPORT_COMPLETE = "La importacion de datos de Salsify finalizo."
MSG_IMPORT_QUEUED = "Los productos de Salsify fueron encolados para importacion."
MSG_NO_BUNDLE = (
    "No hay tipo de contenido configurado para la importacion. "
    "Configura SALSIFY_ENTITY_TYPE y SALSIFY_BUNDLE."
)
MSG_TRANSPORT_ERROR = (
    "Fallo la solicitud a Salsify. Verifica SALSIFY_PRODUCT_FEED_URL, "
    "SALSIFY_ACCESS_TOKEN y la conectividad."
)
MSG_DATA_SHAPE_ERROR = (
    "Salsify respondio con un formato inesperado. Revisa la configuracion del canal."
)
MSG_NO_PRODUCT_DATA = (
    "Salsify no devolvio datos de productos. Verifica que el canal tenga productos publicados."
)
MSG_RUN_IN_PROGRESS = (
    "Ya hay una sincronizacion de Salsify en curso para este tipo de contenido."
)
