"""Session, stream and server statistics."""