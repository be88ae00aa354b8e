# Services are imported from their modules directly so that importing one
# (e.g. prompts in tests) does not pull in boto3 or the Gemini SDK:
# from services.physique_simulator import PhysiqueSimulator
# from services.storage import create_photo_storage

__all__ = []
