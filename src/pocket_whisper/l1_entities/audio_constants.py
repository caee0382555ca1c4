"""Fixed constants of the audio feature format expected by the inference engine."""

SAMPLE_RATE = 16000
CHANNELS = 1
BYTES_PER_SAMPLE = 2  # int16 PCM

N_FFT = 400
HOP_LENGTH = 160
N_MEL = 80

CHUNK_SECONDS = 30
N_SAMPLES = SAMPLE_RATE * CHUNK_SECONDS  # 480000
MEL_LEN = N_SAMPLES // HOP_LENGTH  # 3000
