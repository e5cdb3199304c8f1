from reporter.preprocessing.frame_decoder import decode_frame
