"""Handler callbacks that applications implement for an RTMP server."""