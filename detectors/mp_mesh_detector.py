import numpy as np
from .base_detector import BaseDetector
from .landmarks import mesh_points_to_face

class MediaPipeMeshDetector(BaseDetector):
    name = "mesh"

    def __init__(self, max_num_faces=5, min_detection_confidence=0.5):
        super().__init__()
        self.max_num_faces = max_num_faces
        self.min_detection_confidence = min_detection_confidence
        self.mesh = None

    async def _load(self):
        # Face Mesh ships its model inside the wheel, nothing to fetch
        import mediapipe as mp
        self.mesh = mp.solutions.face_mesh.FaceMesh(
            max_num_faces=self.max_num_faces,
            refine_landmarks=True,
            static_image_mode=True,
            min_detection_confidence=self.min_detection_confidence,
        )

    def detect(self, frame):
        import cv2
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        res = self.mesh.process(rgb)

        h, w = frame.shape[:2]
        faces = []

        if res.multi_face_landmarks:
            for fl in res.multi_face_landmarks:
                pts = np.array([
                    (lm.x * w, lm.y * h) for lm in fl.landmark
                ], dtype=np.float32)
                faces.append(mesh_points_to_face(pts))

        return faces

    def close(self):
        if self.mesh is not None:
            self.mesh.close()
            self.mesh = None
        self.ready = False
