import strawberry
from apps.campaigns.graphql.queries import CampaignQueries
from apps.campaigns.graphql.mutations import CampaignMutations

@strawberry.type
class Query(CampaignQueries):
    pass

@strawberry.type
class Mutation(CampaignMutations):
    pass

schema = strawberry.Schema(query=Query, mutation=Mutation)
