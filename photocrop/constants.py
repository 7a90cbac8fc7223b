STANDARD_EXTENSIONS = {".jpg", ".jpeg", ".png", ".tif", ".tiff", ".bmp", ".gif", ".webp"}
HEIF_EXTENSIONS = {".heic", ".heif", ".hif"}
SUPPORTED_EXTENSIONS = STANDARD_EXTENSIONS | HEIF_EXTENSIONS

EXPORT_EXTENSIONS = {".jpg", ".jpeg", ".png"}

# Working canvas
CANVAS_PADDING_FACTOR = 3
CANVAS_MAX_SIDE = 16000
CANVAS_FILL_COLOR = "#000000"

# Viewport
OVERLAY_PADDING = 15
MIN_ZOOM = 0.1
WHEEL_ZOOM_STEP = 1.1
WHEEL_ZOOM_FINE_STEP = 1.025
BUTTON_ZOOM_STEP = 0.1

# EXIF directories kept from a loaded image
IFD_PRIMARY = "0th"
IFD_EXIF = "Exif"
IFD_GPS = "GPS"
KEPT_IFDS = (IFD_PRIMARY, IFD_EXIF, IFD_GPS)

# EXIF field types
TYPE_BYTE = 1
TYPE_ASCII = 2
TYPE_SHORT = 3
TYPE_LONG = 4
TYPE_RATIONAL = 5
TYPE_UNDEFINED = 7
TYPE_SLONG = 9
TYPE_SRATIONAL = 10
TYPE_FLOAT = 11
TYPE_DOUBLE = 12

# Tag ids
TAG_ORIENTATION = 0x0112
TAG_SOFTWARE = 0x0131
TAG_ARTIST = 0x013B
TAG_GPS_VERSION = 0x0000
TAG_GPS_LATITUDE_REF = 0x0001
TAG_GPS_LATITUDE = 0x0002
TAG_GPS_LONGITUDE_REF = 0x0003
TAG_GPS_LONGITUDE = 0x0004

ORIENTATION_NORMAL = 1
GPS_VERSION = (2, 2, 0, 0)
GPS_SECONDS_DENOMINATOR = 1_000_000

DEFAULT_SOFTWARE = "PhotoCrop"

# Single-instance IPC server name used to hand files to the running app
SEND_TO_APP_ID = "photocrop"
