"""
Item category tags and the category sets the engine works with.

Category tags are plain lowercase strings as stored in the model snapshot.
"""

# Piping
PIPE_CURVES = "pipe_curves"
PIPE_FITTING = "pipe_fitting"
PIPE_ACCESSORY = "pipe_accessory"
FLEX_PIPE_CURVES = "flex_pipe_curves"
PIPE_INSULATIONS = "pipe_insulations"

# Ductwork
DUCT_CURVES = "duct_curves"
DUCT_FITTING = "duct_fitting"
DUCT_ACCESSORY = "duct_accessory"
FLEX_DUCT_CURVES = "flex_duct_curves"
DUCT_TERMINAL = "duct_terminal"
DUCT_INSULATIONS = "duct_insulations"

# Mechanical
MECHANICAL_EQUIPMENT = "mechanical_equipment"
PLUMBING_FIXTURES = "plumbing_fixtures"
SPRINKLERS = "sprinklers"
FIRE_ALARM_DEVICES = "fire_alarm_devices"

# Electrical
CABLE_TRAY = "cable_tray"
CABLE_TRAY_FITTING = "cable_tray_fitting"
CONDUIT = "conduit"
CONDUIT_FITTING = "conduit_fitting"
ELECTRICAL_EQUIPMENT = "electrical_equipment"
ELECTRICAL_FIXTURES = "electrical_fixtures"
LIGHTING_FIXTURES = "lighting_fixtures"
LIGHTING_DEVICES = "lighting_devices"
DATA_DEVICES = "data_devices"
COMMUNICATION_DEVICES = "communication_devices"
SECURITY_DEVICES = "security_devices"

# Structural
STRUCTURAL_FRAMING = "structural_framing"
STRUCTURAL_COLUMNS = "structural_columns"
STRUCTURAL_FOUNDATION = "structural_foundation"
STRUCTURAL_FRAMING_SYSTEM = "structural_framing_system"
STRUCTURAL_STIFFENER = "structural_stiffener"
STRUCTURAL_TRUSS = "structural_truss"

# Architectural
WALLS = "walls"
DOORS = "doors"
WINDOWS = "windows"

# General
GENERIC_MODEL = "generic_model"
SPECIALITY_EQUIPMENT = "speciality_equipment"
MASS = "mass"
FURNITURE = "furniture"
FURNITURE_SYSTEMS = "furniture_systems"
CASEWORK = "casework"
PARTS = "parts"

# Not transferable on their own
VIEWS = "views"
SHEETS = "sheets"
SCHEDULES = "schedules"
GRIDS = "grids"
LEVELS = "levels"
REFERENCE_PLANES = "reference_planes"
REFERENCE_LINES = "reference_lines"
ROOMS = "rooms"
AREAS = "areas"
ROOM_SEPARATION_LINES = "room_separation_lines"
AREA_SEPARATION_LINES = "area_separation_lines"
CAMERAS = "cameras"
SCOPE_BOXES = "scope_boxes"
MATCHLINES = "matchlines"
CURTAIN_GRIDS = "curtain_grids"
CURTAIN_GRID_LINES = "curtain_grid_lines"
CURTAIN_WALL_MULLIONS = "curtain_wall_mullions"
CURTAIN_WALL_PANELS = "curtain_wall_panels"

# Aggregate systems, transferred through their members
PIPING_SYSTEM = "piping_system"
DUCT_SYSTEM = "duct_system"
ELECTRICAL_CIRCUIT = "electrical_circuit"
STAIRS = "stairs"
RAILINGS = "railings"
CURTAIN_SYSTEMS = "curtain_systems"


ELECTRICAL_CATEGORIES = frozenset({
    CABLE_TRAY,
    CABLE_TRAY_FITTING,
    CONDUIT,
    CONDUIT_FITTING,
    ELECTRICAL_EQUIPMENT,
    ELECTRICAL_FIXTURES,
    LIGHTING_FIXTURES,
})

CABLE_TRAY_CATEGORIES = frozenset({CABLE_TRAY, CABLE_TRAY_FITTING})

PURE_STRUCTURAL_CATEGORIES = frozenset({
    STRUCTURAL_FRAMING,
    STRUCTURAL_COLUMNS,
    STRUCTURAL_FOUNDATION,
    STRUCTURAL_FRAMING_SYSTEM,
    STRUCTURAL_STIFFENER,
    STRUCTURAL_TRUSS,
})

CLEANROOM_CATEGORIES = frozenset({WALLS, GENERIC_MODEL, DOORS, WINDOWS})

FOUNDATION_CATEGORIES = frozenset({STRUCTURAL_FOUNDATION, GENERIC_MODEL, MECHANICAL_EQUIPMENT})

# Duct/pipe-like items that carry a declared system name
SYSTEM_NAME_CATEGORIES = frozenset({
    PIPE_CURVES,
    FLEX_PIPE_CURVES,
    PIPE_FITTING,
    PIPE_ACCESSORY,
    DUCT_CURVES,
    FLEX_DUCT_CURVES,
    DUCT_FITTING,
    DUCT_ACCESSORY,
    DUCT_TERMINAL,
    MECHANICAL_EQUIPMENT,
    PLUMBING_FIXTURES,
    SPRINKLERS,
})

# Items the organize run looks at. Order is the collection order.
MONITORED_CATEGORIES = (
    PIPE_FITTING,
    PIPE_ACCESSORY,
    PIPE_CURVES,
    FLEX_PIPE_CURVES,
    DUCT_FITTING,
    DUCT_ACCESSORY,
    DUCT_CURVES,
    FLEX_DUCT_CURVES,
    DUCT_TERMINAL,
    MECHANICAL_EQUIPMENT,
    PLUMBING_FIXTURES,
    SPRINKLERS,
    ELECTRICAL_EQUIPMENT,
    ELECTRICAL_FIXTURES,
    LIGHTING_FIXTURES,
    CABLE_TRAY,
    CABLE_TRAY_FITTING,
    CONDUIT,
    CONDUIT_FITTING,
    STRUCTURAL_FRAMING,
    STRUCTURAL_COLUMNS,
    STRUCTURAL_FOUNDATION,
    STRUCTURAL_FRAMING_SYSTEM,
    STRUCTURAL_STIFFENER,
    STRUCTURAL_TRUSS,
    WALLS,
    DOORS,
    WINDOWS,
    GENERIC_MODEL,
    SPECIALITY_EQUIPMENT,
    MASS,
    FURNITURE,
    FURNITURE_SYSTEMS,
)

# Items worth extracting into per-partition artifacts
RELEVANT_CATEGORIES = frozenset(MONITORED_CATEGORIES) | {
    PIPE_INSULATIONS,
    DUCT_INSULATIONS,
    FIRE_ALARM_DEVICES,
    LIGHTING_DEVICES,
    DATA_DEVICES,
    COMMUNICATION_DEVICES,
    SECURITY_DEVICES,
    CASEWORK,
    PARTS,
}

NON_TRANSFERABLE_CATEGORIES = frozenset({
    VIEWS,
    SHEETS,
    SCHEDULES,
    GRIDS,
    LEVELS,
    REFERENCE_PLANES,
    REFERENCE_LINES,
    ROOMS,
    AREAS,
    ROOM_SEPARATION_LINES,
    AREA_SEPARATION_LINES,
    CAMERAS,
    SCOPE_BOXES,
    MATCHLINES,
    CURTAIN_GRIDS,
    CURTAIN_GRID_LINES,
    CURTAIN_WALL_MULLIONS,
    CURTAIN_WALL_PANELS,
})

AGGREGATE_CATEGORIES = frozenset({
    PIPING_SYSTEM,
    DUCT_SYSTEM,
    ELECTRICAL_CIRCUIT,
    STAIRS,
    RAILINGS,
    CURTAIN_SYSTEMS,
})
