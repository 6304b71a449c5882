
class BaseOverlay:
    """
    Takes image + landmarks (or None) -> returns a new image.
    The input image is never modified.
    """
    def apply(self, image, landmarks):
        raise NotImplementedError
