
import logging
def get_logger(name:str="pyv-cachesim", level:int|None=None):
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger
