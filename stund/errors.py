# Defines all custom exceptions.

# Datagram couldn't be decoded as a STUN message.
class ErrorStunDecode(Exception):
    pass

# Less than a full 20 byte header.
class ErrorStunTooShort(ErrorStunDecode):
    pass

class ErrorStunBadCookie(ErrorStunDecode):
    pass

# Header length field doesn't match the datagram size.
class ErrorStunLengthMismatch(ErrorStunDecode):
    pass

# Decoded fine but it's not something we answer.
class ErrorNotBindingRequest(Exception):
    pass

class ErrorRateLimited(Exception):
    pass

class ErrorSendFailure(Exception):
    pass

class ErrorInvalidConf(Exception):
    pass

# Another process holds the listen lock for that port.
class ErrorServZombie(Exception):
    pass

class ErrorListenConflict(Exception):
    pass

class ErrorNoReply(Exception):
    pass
