"""Status and error text published to the caller."""

LOG_READY = "Ready"
LOG_STARTING = "Starting processing task..."
LOG_ENCODING = "Encoding... frames processed: "
LOG_HEX_HACK = "Applying hex patch..."
LOG_FINISHED = "Task finished! Output directory: "
LOG_CANCELLED = "Task cancelled, partial output left in: "
LOG_NO_FRAMES = "No frames were encoded, output left in: "

ERR_OPEN_FAILED = "Error: unable to open file"
ERR_ENCODER_INIT = "Error: unable to initialise GIF encoder"
ERR_IO_FAILED = "Error: unable to write output files"
ERR_UNEXPECTED = "Error: processing stopped unexpectedly"

# Console snippet for the artwork upload page, pasted after each slice upload
UPLOAD_PAGE_URL = "steamcommunity.com/sharedfiles/edititem/767/3/"
UPLOAD_SNIPPET = (
    "$J('#ConsumerAppID').val(480),"
    "$J('[name=file_type]').val(0),"
    "$J('[name=visibility]').val(0);"
)
