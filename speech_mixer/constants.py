"""All magic numbers, lookup tables and configuration constants."""

# --- Vocabulary ---
EMOTIONAL_TONES = ("sensual", "excited", "climax", "whisper", "intense", "soft")
SPEECH_RATES = ("very-slow", "slow", "moderate", "fast", "default")
VOLUMES = ("soft", "normal", "loud")
CONTEXTUAL_MOODS = ("neutral", "anticipation", "tension", "relaxation", "intimacy", "passion")

# --- Timeline ---
DEFAULT_FADE_IN = 0.15              # seconds: scheduled fade-in when the segment sets none
DEFAULT_FADE_OUT = 0.2              # seconds: scheduled fade-out when the segment sets none
DEFAULT_CROSSFADE = 0.3             # seconds: planned overlap between consecutive segments
PAUSE_SECONDS = 0.3                 # seconds added per sentence-terminal punctuation mark
MIN_SEGMENT_DURATION = 0.1          # seconds: floor for estimated durations
CHARS_PER_SECOND = {
    "very-slow": 10,
    "slow": 12,
    "moderate": 15,
    "fast": 18,
    "default": 13,
}

# --- Mixing ---
MIX_SAMPLE_RATE = 44100             # engine operating rate
MIX_CHANNELS = 2                    # stereo mix buffer
MIX_BLOCK_SIZE = 4096               # samples per gain block
MIX_DEFAULT_FADE_IN = 0.1           # seconds: mixer fade-in when a segment carries none
MAX_CROSSFADE_OUT = 0.5             # seconds: cap for the computed crossfade fade-out
CROSSFADE_OUT_RATIO = 0.2           # fraction of segment duration used as crossfade fade-out
NORMALIZATION_TARGET = 0.9          # peak ceiling after mixing
VOLUME_GAINS = {
    "soft": 0.7,
    "normal": 1.0,
    "loud": 1.25,
}

# --- Encoding ---
PCM_BITS_PER_SAMPLE = 16
PCM_SCALE = 32767                   # float → int16 scale (0x7FFF)

# --- Text analysis ---
PUNCTUATION_WEIGHT = 0.5            # share of intensity from !/… density
KEYWORD_WEIGHT = 0.5                # share of intensity from emotion keywords
KEYWORD_DENSITY_SCALE = 5.0         # keyword density at which the keyword share saturates (0.2)
RHYTHM_REFERENCE_WORDS = 25         # mean sentence length (words) that maps to rhythm 0
PROGRESSION_CONTEXT_BOOST = 1.2     # progression multiplier when a previous segment exists
MOOD_PASSION_INTENSITY = 0.7
MOOD_TENSION_INTENSITY = 0.5
MOOD_INTIMACY_KEYWORD_DENSITY = 0.1
MOOD_INTIMACY_MAX_RHYTHM = 0.5
MOOD_RELAXATION_MAX_RHYTHM = 0.4
EMOTION_KEYWORDS = {
    "sensual": ("desire", "caress", "skin", "shiver", "sensual", "warmth", "body", "velvet"),
    "excited": ("moan", "sigh", "excited", "passionate", "burning", "urgent", "longing", "tremble"),
    "climax": ("ecstasy", "release", "pleasure", "delight", "explosion", "rapture", "peak"),
    "whisper": ("whisper", "breath", "murmur", "hush", "tender", "delicate"),
    "intense": ("strong", "intense", "deep", "powerful", "violent", "ardent", "wild"),
    "soft": ("tender", "gentle", "delicate", "light", "sweet", "softness"),
}

# --- Voice parameters ---
VOICE_SETTINGS = {
    "sensual": {"stability": 0.7, "expressiveness": 0.9},
    "excited": {"stability": 0.4, "expressiveness": 0.95},
    "climax": {"stability": 0.3, "expressiveness": 1.0},
    "whisper": {"stability": 0.85, "expressiveness": 0.8},
    "intense": {"stability": 0.4, "expressiveness": 0.95},
    "soft": {"stability": 0.75, "expressiveness": 0.85},
}
STABILITY_INTENSITY_DAMPING = 0.3
STABILITY_RANGE = (0.3, 0.9)
EXPRESSIVENESS_PROGRESSION_BOOST = 0.15
EXPRESSIVENESS_RANGE = (0.6, 1.0)

# Transition durations (ms) between consecutive emotional tones
DEFAULT_TRANSITION_MS = 500
EMOTION_TRANSITIONS_MS = {
    "sensual": {"excited": 600, "climax": 800, "whisper": 400, "intense": 700, "soft": 300},
    "excited": {"sensual": 600, "climax": 400, "whisper": 700, "intense": 500, "soft": 800},
    "climax": {"sensual": 800, "excited": 400, "whisper": 900, "intense": 300, "soft": 1000},
    "whisper": {"sensual": 400, "excited": 700, "climax": 900, "intense": 800, "soft": 300},
    "intense": {"sensual": 700, "excited": 500, "climax": 300, "whisper": 800, "soft": 900},
    "soft": {"sensual": 300, "excited": 800, "climax": 1000, "whisper": 300, "intense": 900},
}

# --- Markup ---
PAUSE_BASE_MS = 1000                # pause length at zero intensity
PAUSE_INTENSITY_MS = 700            # extra pause at full intensity
PAUSE_MAX_MS = 1500
PAUSE_MULTIPLIERS = {
    "...": 1.2,
    "…": 1.2,
    "!": 1.5,
    "?": 1.1,
    ".": 1.0,
    ",": 0.7,
}
EMPHASIS_STRONG_INTENSITY = 0.7     # above this, emphasis is "strong" instead of "moderate"
NEUTRAL_MOOD_PATTERN = {"pitch": "-5%", "rate": "70%"}
MOOD_PATTERNS = {
    "anticipation": {"pitch": "+5%", "rate": "55%"},
    "tension": {"pitch": "+10%", "rate": "65%"},
    "relaxation": {"pitch": "-5%", "rate": "50%"},
    "intimacy": {"pitch": "-10%", "rate": "45%"},
    "passion": {"pitch": "+15%", "rate": "60%"},
}

# --- Synthesis ---
TTS_RETRY_COUNT = 3                 # max attempts per segment
TTS_RETRY_BASE_DELAY = 1.0          # seconds: base delay for exponential backoff
TTS_VOICE = "en-US-AriaNeural"      # default edge-tts voice
TTS_REFERENCE_PITCH_HZ = 100        # assumed base voice pitch (~100 Hz); edge-tts only takes Hz offsets, so +5% -> +5Hz
ELEVENLABS_URL = "https://api.elevenlabs.io/v1/text-to-speech/{voice_id}"
ELEVENLABS_MODEL = "eleven_multilingual_v2"
ELEVENLABS_TIMEOUT_SECONDS = 60

# --- Playback ---
DEFAULT_MASTER_VOLUME = 0.8

OUTPUT_DIR = "output"
VERSION = "0.1.0"
