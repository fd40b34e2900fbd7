# Formats a millisecond duration as MM:SS, or HH:MM:SS once it reaches an hour. Negative values clamp to zero.
def format_duration(milliseconds):
    seconds = max(0, int(milliseconds)) // 1000
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    if h:
        return f"{h:02d}:{m:02d}:{s:02d}"
    return f"{m:02d}:{s:02d}"
